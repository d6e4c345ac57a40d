"""Query dispatcher.

Issues the Consul queries of one collection cycle in a fixed order, records
the scalar gauges on the working snapshot and streams per-service health
batches and the full check list to the aggregator.
"""

import logging
from typing import List

from consul_exporter.core.consul import ConsulClientError, IConsulClient
from consul_exporter.core.models import HealthCheck, ServiceHealthEntry
from consul_exporter.monitoring.snapshot import MetricsSnapshot
from consul_exporter.monitoring.streams import ResultStream

logger = logging.getLogger(__name__)


class QueryDispatcher:
    """Runs the backend queries of a scrape and feeds the result streams."""

    def __init__(self, client: IConsulClient):
        """Initialize dispatcher.

        Args:
            client: Consul client
        """
        self.client = client

    async def dispatch(
        self,
        snapshot: MetricsSnapshot,
        entries: ResultStream[List[ServiceHealthEntry]],
        checks: ResultStream[List[HealthCheck]],
    ) -> None:
        """Query Consul and stream the results.

        Both streams are closed when this returns, whatever the exit path.

        Args:
            snapshot: Working snapshot receiving the scalar gauges
            entries: Stream of per-service health batches
            checks: Stream of health check lists
        """
        try:
            await self._query(snapshot, entries, checks)
        finally:
            entries.close()
            checks.close()

    async def _query(
        self,
        snapshot: MetricsSnapshot,
        entries: ResultStream[List[ServiceHealthEntry]],
        checks: ResultStream[List[HealthCheck]],
    ) -> None:
        # Peers decide whether we're up.
        try:
            peers = await self.client.peers()
        except ConsulClientError as e:
            snapshot.up = 0.0
            logger.error(f"Query error is {e}")
            return

        snapshot.up = 1.0
        snapshot.raft_peers = float(len(peers))

        try:
            nodes = await self.client.nodes()
        except ConsulClientError as e:
            # Partial failure: keep the previous member count.
            logger.error(f"Failed to query catalog nodes: {e}")
        else:
            snapshot.serf_lan_members = float(len(nodes))

        # The count is recorded before the error is looked at.
        service_names: List[str] = []
        error = None
        try:
            service_names = await self.client.service_names()
        except ConsulClientError as e:
            error = e
        snapshot.catalog_services = float(len(service_names))

        if error is not None:
            logger.error(f"Failed to query catalog services: {error}")
            return

        for name in service_names:
            try:
                batch = await self.client.service_health(name)
            except ConsulClientError as e:
                logger.error(f"Failed to query service health: {e}", extra={"service": name})
                continue
            await entries.put(batch)

        try:
            all_checks = await self.client.all_checks()
        except ConsulClientError as e:
            logger.error(f"Failed to query health checks: {e}")
        else:
            await checks.put(all_checks)
