"""Monitoring module: collection pipeline and Prometheus exposition."""

from consul_exporter.monitoring.snapshot import MetricsSnapshot, SnapshotStore
from consul_exporter.monitoring.streams import ResultStream
from consul_exporter.monitoring.dispatcher import QueryDispatcher
from consul_exporter.monitoring.aggregator import HealthAggregator, KeyValueAggregator
from consul_exporter.monitoring.collector import ConsulCollector
from consul_exporter.monitoring.exposition import SnapshotExporter, create_registry

__all__ = [
    "MetricsSnapshot",
    "SnapshotStore",
    "ResultStream",
    "QueryDispatcher",
    "HealthAggregator",
    "KeyValueAggregator",
    "ConsulCollector",
    "SnapshotExporter",
    "create_registry",
]
