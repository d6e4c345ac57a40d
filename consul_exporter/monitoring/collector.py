"""Collection cycle orchestration.

One call to ``ConsulCollector.collect`` runs a full scrape: it takes the
store lock, starts a fresh working snapshot, runs the query dispatcher as a
task while the health aggregator drains its streams, exports key/value
gauges and publishes the result. Concurrent scrapes queue on the lock.
"""

import asyncio
import contextlib
import logging
import re
import time
from typing import Optional

from consul_exporter.core.config import Settings
from consul_exporter.core.consul import IConsulClient
from consul_exporter.monitoring.aggregator import HealthAggregator, KeyValueAggregator
from consul_exporter.monitoring.dispatcher import QueryDispatcher
from consul_exporter.monitoring.snapshot import MetricsSnapshot, SnapshotStore
from consul_exporter.monitoring.streams import ResultStream

logger = logging.getLogger(__name__)


class ConsulCollector:
    """Builds and publishes one metrics snapshot per scrape."""

    def __init__(
        self,
        client: IConsulClient,
        kv_prefix: str = "",
        kv_pattern: Optional[re.Pattern] = None,
        scrape_timeout: Optional[float] = None,
        store: Optional[SnapshotStore] = None,
    ):
        """Initialize collector.

        Args:
            client: Consul client
            kv_prefix: KV prefix to export (empty disables)
            kv_pattern: Key filter (defaults to matching everything)
            scrape_timeout: Deadline for one cycle in seconds (None disables)
            store: Snapshot store (a new one is created if omitted)
        """
        self.client = client
        self.store = store or SnapshotStore()
        self.dispatcher = QueryDispatcher(client)
        self.kv_aggregator = KeyValueAggregator(client, kv_prefix, kv_pattern or re.compile(".*"))
        self.scrape_timeout = scrape_timeout

    @classmethod
    def from_settings(cls, client: IConsulClient, settings: Settings) -> "ConsulCollector":
        return cls(
            client,
            kv_prefix=settings.kv_prefix,
            kv_pattern=settings.kv_pattern,
            scrape_timeout=settings.scrape_timeout_seconds,
        )

    async def collect(self) -> MetricsSnapshot:
        """Run one collection cycle.

        Returns:
            The snapshot published by this cycle
        """
        async with self.store.lock:
            started = time.monotonic()
            snapshot = self.store.begin()
            expired = await self._collect_health(snapshot)
            if expired:
                logger.warning("Skipping key/value export: scrape deadline exceeded")
            else:
                await self.kv_aggregator.collect(snapshot)
            self.store.publish(snapshot)
            logger.debug(f"Scrape finished in {time.monotonic() - started:.3f}s")
        return self.store.current

    async def _collect_health(self, snapshot: MetricsSnapshot) -> bool:
        """Run dispatcher and aggregator together.

        Returns:
            True if the scrape deadline expired
        """
        entries: ResultStream = ResultStream("entries")
        checks: ResultStream = ResultStream("checks")
        dispatch_task = asyncio.create_task(self.dispatcher.dispatch(snapshot, entries, checks))
        aggregator = HealthAggregator(snapshot)

        try:
            await asyncio.wait_for(aggregator.drain(entries, checks), timeout=self.scrape_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Scrape deadline of {self.scrape_timeout}s exceeded, publishing partial data")
            dispatch_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await dispatch_task
            return True
        except BaseException:
            dispatch_task.cancel()
            raise

        # Streams are closed only when dispatch has finished; surface its errors.
        await dispatch_task
        return False
