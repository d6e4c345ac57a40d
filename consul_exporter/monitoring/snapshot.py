"""Metrics snapshot and snapshot store.

A ``MetricsSnapshot`` holds every gauge value exported for one collection
cycle. The ``SnapshotStore`` owns the currently published snapshot and the
lock that serializes rebuilds: a new snapshot is built privately under the
lock and published by swapping a single reference, so readers never see a
half-built metric set and never need the lock.
"""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Iterator, Optional, Tuple

from consul_exporter.core.constants import NAMESPACE

ServiceNodeKey = Tuple[str, str]
CheckNodeKey = Tuple[str, str]

UP = f"{NAMESPACE}_up"
RAFT_PEERS = f"{NAMESPACE}_raft_peers"
SERF_LAN_MEMBERS = f"{NAMESPACE}_serf_lan_members"
CATALOG_SERVICES = f"{NAMESPACE}_catalog_services"
CATALOG_SERVICE_NODES = f"{NAMESPACE}_catalog_service_nodes"
CATALOG_SERVICE_NODE_HEALTHY = f"{NAMESPACE}_catalog_service_node_healthy"
CATALOG_SERVICE_ENTRIES_BY_NODES = f"{NAMESPACE}_catalog_service_entries_by_nodes"
CATALOG_SERVICE_ENTRIES_BY_NODE_HEALTHY = f"{NAMESPACE}_catalog_service_entries_by_node_healthy"
AGENT_CHECK = f"{NAMESPACE}_agent_check"
CATALOG_KV = f"{NAMESPACE}_catalog_kv"


@dataclass
class MetricsSnapshot:
    """All exported gauge values of one collection cycle."""

    # Reset every cycle; only the peer query sets it
    up: float = 0.0

    # Scalar gauges, carried into the next cycle and overwritten on success
    raft_peers: float = 0.0
    serf_lan_members: float = 0.0
    catalog_services: float = 0.0

    # Vector gauges, empty at the start of every cycle
    service_nodes: Dict[str, float] = field(default_factory=dict)
    service_node_healthy: Dict[ServiceNodeKey, float] = field(default_factory=dict)
    service_entries_by_node: Dict[ServiceNodeKey, float] = field(default_factory=dict)
    service_entries_by_node_healthy: Dict[ServiceNodeKey, float] = field(default_factory=dict)
    agent_checks: Dict[CheckNodeKey, float] = field(default_factory=dict)
    key_values: Dict[str, float] = field(default_factory=dict)

    timestamp: Optional[datetime] = None

    def next_cycle(self) -> "MetricsSnapshot":
        """Start a new cycle: keep scalar counters, reset ``up`` and every vector gauge."""
        return MetricsSnapshot(
            raft_peers=self.raft_peers,
            serf_lan_members=self.serf_lan_members,
            catalog_services=self.catalog_services,
        )

    def samples(self) -> Iterator[Tuple[str, Tuple[str, ...], float]]:
        """Yield ``(metric name, label values, value)`` for every gauge."""
        yield UP, (), self.up
        yield RAFT_PEERS, (), self.raft_peers
        yield SERF_LAN_MEMBERS, (), self.serf_lan_members
        yield CATALOG_SERVICES, (), self.catalog_services
        for service, value in self.service_nodes.items():
            yield CATALOG_SERVICE_NODES, (service,), value
        for key, value in self.service_node_healthy.items():
            yield CATALOG_SERVICE_NODE_HEALTHY, key, value
        for key, value in self.service_entries_by_node.items():
            yield CATALOG_SERVICE_ENTRIES_BY_NODES, key, value
        for key, value in self.service_entries_by_node_healthy.items():
            yield CATALOG_SERVICE_ENTRIES_BY_NODE_HEALTHY, key, value
        for key, value in self.agent_checks.items():
            yield AGENT_CHECK, key, value
        for kv_key, value in self.key_values.items():
            yield CATALOG_KV, (kv_key,), value

    def as_dict(self) -> Dict[Tuple[str, Tuple[str, ...]], float]:
        """Flatten into a ``(metric name, labels) -> value`` mapping."""
        return {(name, labels): value for name, labels, value in self.samples()}


class SnapshotStore:
    """Owns the published snapshot and the rebuild lock."""

    def __init__(self) -> None:
        self._current = MetricsSnapshot()
        self.lock = asyncio.Lock()

    @property
    def current(self) -> MetricsSnapshot:
        """Last published snapshot. Safe to read without the lock."""
        return self._current

    def begin(self) -> MetricsSnapshot:
        """Create the working snapshot for a new cycle.

        Must be called with ``lock`` held.
        """
        if not self.lock.locked():
            raise RuntimeError("snapshot rebuild requires the store lock")
        return self._current.next_cycle()

    def publish(self, snapshot: MetricsSnapshot) -> None:
        """Atomically replace the published snapshot.

        Must be called with ``lock`` held.
        """
        if not self.lock.locked():
            raise RuntimeError("snapshot publish requires the store lock")
        self._current = replace(snapshot, timestamp=datetime.utcnow())
