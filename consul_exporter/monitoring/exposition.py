"""Prometheus exposition of the published snapshot.

``SnapshotExporter`` is a prometheus_client custom collector. It never talks
to Consul itself: it renders whatever snapshot the store last published, so
a registry render never observes a rebuild in progress.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client.core import GaugeMetricFamily

from consul_exporter.core.constants import CHECK_LABEL_NAMES, KEY_LABEL_NAMES, SERVICE_LABEL_NAMES
from consul_exporter.monitoring import snapshot as names
from consul_exporter.monitoring.snapshot import MetricsSnapshot, SnapshotStore


@dataclass(frozen=True)
class GaugeSpec:
    name: str
    documentation: str
    labels: tuple[str, ...] = ()


GAUGES = (
    GaugeSpec(names.UP, "Was the last query of Consul successful."),
    GaugeSpec(names.RAFT_PEERS, "How many peers (servers) are in the Raft cluster."),
    GaugeSpec(names.SERF_LAN_MEMBERS, "How many members are in the cluster."),
    GaugeSpec(names.CATALOG_SERVICES, "How many services are in the cluster."),
    GaugeSpec(
        names.CATALOG_SERVICE_NODES,
        "Number of nodes currently registered for this service.",
        ("service",),
    ),
    GaugeSpec(
        names.CATALOG_SERVICE_NODE_HEALTHY,
        "Is this service healthy on this node?",
        SERVICE_LABEL_NAMES,
    ),
    GaugeSpec(
        names.CATALOG_SERVICE_ENTRIES_BY_NODES,
        "Number of service entries currently registered by node for this service.",
        SERVICE_LABEL_NAMES,
    ),
    GaugeSpec(
        names.CATALOG_SERVICE_ENTRIES_BY_NODE_HEALTHY,
        "Number of service entries currently registered by node that are healthy for this service.",
        SERVICE_LABEL_NAMES,
    ),
    GaugeSpec(names.AGENT_CHECK, "Is this check passing on this node?", CHECK_LABEL_NAMES),
    GaugeSpec(
        names.CATALOG_KV,
        "The values for selected keys in Consul's key/value catalog. Keys with non-numeric values are omitted.",
        KEY_LABEL_NAMES,
    ),
)


def _family(spec: GaugeSpec) -> GaugeMetricFamily:
    if spec.labels:
        return GaugeMetricFamily(spec.name, spec.documentation, labels=list(spec.labels))
    return GaugeMetricFamily(spec.name, spec.documentation)


def build_families(snapshot: MetricsSnapshot) -> list[GaugeMetricFamily]:
    """Convert a snapshot into gauge families, one per exported metric."""
    families = {spec.name: (spec, _family(spec)) for spec in GAUGES}
    for name, labels, value in snapshot.samples():
        spec, family = families[name]
        if spec.labels:
            family.add_metric(list(labels), value)
        else:
            family.add_metric([], value)
    return [family for _, family in families.values()]


class SnapshotExporter:
    """Custom collector rendering the store's published snapshot."""

    def __init__(self, store: SnapshotStore) -> None:
        self.store = store

    def describe(self) -> Iterator[GaugeMetricFamily]:
        for spec in GAUGES:
            yield _family(spec)

    def collect(self) -> Iterator[GaugeMetricFamily]:
        yield from build_families(self.store.current)


def create_registry(store: SnapshotStore) -> CollectorRegistry:
    """Create a registry holding only the snapshot exporter."""
    registry = CollectorRegistry()
    registry.register(SnapshotExporter(store))
    return registry


def render(registry: CollectorRegistry) -> tuple[bytes, str]:
    """Render the registry in the Prometheus text format.

    Returns:
        Tuple of (body, content type)
    """
    return generate_latest(registry), CONTENT_TYPE_LATEST
