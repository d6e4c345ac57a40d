"""Consul client interface for abstraction.

This module defines the backend interface the collection pipeline depends on.
It is implemented by the HTTP client and by in-memory fakes in tests.
"""

from abc import ABC, abstractmethod
from typing import List
from consul_exporter.core.models import HealthCheck, KVPair, Node, ServiceHealthEntry


class ConsulClientError(Exception):
    """Raised when a Consul query fails (transport, status or payload)."""


class IConsulClient(ABC):
    """Interface for Consul clients (real or fake)."""

    @abstractmethod
    async def peers(self) -> List[str]:
        """Get Raft peers.

        Returns:
            Peer addresses
        """
        pass

    @abstractmethod
    async def nodes(self) -> List[Node]:
        """Get catalog nodes.

        Returns:
            List of nodes
        """
        pass

    @abstractmethod
    async def service_names(self) -> List[str]:
        """Get names of all catalog services.

        Returns:
            Service names
        """
        pass

    @abstractmethod
    async def service_health(self, name: str) -> List[ServiceHealthEntry]:
        """Get health entries of a service.

        Args:
            name: Service name

        Returns:
            One entry per service instance
        """
        pass

    @abstractmethod
    async def all_checks(self) -> List[HealthCheck]:
        """Get every health check regardless of state.

        Returns:
            List of checks
        """
        pass

    @abstractmethod
    async def list_kv(self, prefix: str) -> List[KVPair]:
        """List key/value pairs recursively under a prefix.

        Args:
            prefix: Key prefix

        Returns:
            List of pairs (empty if the prefix does not exist)
        """
        pass

    async def close(self) -> None:
        """Close client connection (if needed)."""
        pass
