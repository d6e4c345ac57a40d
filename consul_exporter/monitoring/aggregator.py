"""Health and key/value aggregation.

The health aggregator drains the dispatcher's two result streams concurrently
and folds service health batches and check lists into the vector gauges of the
working snapshot. The key/value aggregator exports numeric KV entries.
"""

import asyncio
import logging
import re
from collections import Counter
from typing import List, Optional

from consul_exporter.core.consul import ConsulClientError, IConsulClient
from consul_exporter.core.models import HealthCheck, KVPair, ServiceHealthEntry
from consul_exporter.monitoring.snapshot import MetricsSnapshot
from consul_exporter.monitoring.streams import ResultStream

logger = logging.getLogger(__name__)


class HealthAggregator:
    """Folds health records into the working snapshot."""

    def __init__(self, snapshot: MetricsSnapshot):
        """Initialize aggregator.

        Args:
            snapshot: Working snapshot of the current cycle
        """
        self.snapshot = snapshot

    async def drain(
        self,
        entries: ResultStream[List[ServiceHealthEntry]],
        checks: ResultStream[List[HealthCheck]],
    ) -> None:
        """Consume both streams until each is closed and empty.

        Args:
            entries: Per-service health batches
            checks: Health check lists
        """
        await asyncio.gather(self._drain_entries(entries), self._drain_checks(checks))

    async def _drain_entries(self, entries: ResultStream[List[ServiceHealthEntry]]) -> None:
        async for batch in entries:
            self.add_service_batch(batch)

    async def _drain_checks(self, checks: ResultStream[List[HealthCheck]]) -> None:
        async for batch in checks:
            self.add_checks(batch)

    def add_service_batch(self, batch: List[ServiceHealthEntry]) -> None:
        """Record the health of one service's entries.

        Several entries may share a node, so the per-node entry counts are
        running sums over the batch while the healthy flag is overwritten by
        the last entry seen for that node.

        Args:
            batch: Entries returned for a single service
        """
        if not batch:
            return

        service = batch[0].service
        logger.debug(f"Service {service}: {len(batch)} entries", extra={"service": service})
        self.snapshot.service_nodes[service] = float(len(batch))

        totals: Counter = Counter()
        healthy: Counter = Counter()
        for entry in batch:
            key = (entry.service, entry.node)
            passing = entry.is_healthy

            totals[key] += 1
            if passing:
                healthy[key] += 1

            logger.debug(f"Entry status is {int(passing)}", extra={"service": entry.service, "node": entry.node})
            self.snapshot.service_node_healthy[key] = float(passing)
            self.snapshot.service_entries_by_node[key] = float(totals[key])
            self.snapshot.service_entries_by_node_healthy[key] = float(healthy[key])

    def add_checks(self, checks: List[HealthCheck]) -> None:
        """Record node-level checks; service-bound checks are skipped.

        Args:
            checks: Health checks
        """
        for check in checks:
            if not check.is_node_check:
                continue
            passing = check.is_passing
            self.snapshot.agent_checks[(check.check_id, check.node)] = float(passing)
            logger.debug(f"Check {check.check_id} status is {int(passing)}", extra={"node": check.node})


def parse_float(value: Optional[bytes]) -> Optional[float]:
    """Parse a KV value as a 64-bit float.

    Surrounding whitespace, digit separators, undecodable bytes and empty or
    missing values are rejected.

    Args:
        value: Raw KV value

    Returns:
        Parsed float or None when the value is not numeric
    """
    if not value:
        return None
    try:
        text = value.decode("utf-8")
    except UnicodeDecodeError:
        return None
    if text != text.strip() or "_" in text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


class KeyValueAggregator:
    """Exports numeric values found under a KV prefix."""

    def __init__(self, client: IConsulClient, prefix: str, pattern: re.Pattern):
        """Initialize KV aggregator.

        Args:
            client: Consul client
            prefix: Key prefix to list (empty disables the export)
            pattern: Keys are exported only when this matches anywhere in them
        """
        self.client = client
        self.prefix = prefix
        self.pattern = pattern

    @property
    def enabled(self) -> bool:
        return self.prefix != ""

    async def collect(self, snapshot: MetricsSnapshot) -> None:
        """List the prefix and write numeric values into the snapshot.

        Args:
            snapshot: Working snapshot of the current cycle
        """
        if not self.enabled:
            return

        try:
            pairs = await self.client.list_kv(self.prefix)
        except ConsulClientError as e:
            logger.error(f"Error fetching key/values: {e}")
            return

        self.add_pairs(snapshot, pairs)

    def add_pairs(self, snapshot: MetricsSnapshot, pairs: List[KVPair]) -> None:
        for pair in pairs:
            if not self.pattern.search(pair.key):
                continue
            value = parse_float(pair.value)
            if value is not None:
                snapshot.key_values[pair.key] = value
