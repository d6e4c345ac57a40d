"""Consul HTTP API client.

This client only uses read endpoints of the agent/server HTTP API.
No ACL token is sent; requests run with the agent's anonymous permissions.
"""

import httpx
from typing import Optional
from consul_exporter.core.config import ConsulConfig
from consul_exporter.core.consul import ConsulClientError, IConsulClient
from consul_exporter.core.constants import HEALTH_STATE_ANY
from consul_exporter.core.models import HealthCheck, KVPair, Node, ServiceHealthEntry
from pydantic import ValidationError


class ConsulClient(IConsulClient):
    """Consul client over the HTTP API."""

    def __init__(self, config: ConsulConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize Consul client.

        Args:
            config: Consul connection configuration
            transport: Optional httpx transport (used to mock the API in tests)
        """
        self.config = config
        self.base_url = config.base_url
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(config.timeout_seconds),
            transport=transport,
        )

    async def _get(self, path: str, params: Optional[dict] = None, allow_missing: bool = False):
        """GET a JSON document, mapping every failure to ConsulClientError.

        Args:
            path: API path
            params: Query parameters
            allow_missing: Return None instead of raising on 404

        Returns:
            Decoded JSON body
        """
        try:
            response = await self.client.get(path, params=params)
            if allow_missing and response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise ConsulClientError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise ConsulClientError(f"GET {path} returned invalid JSON: {e}") from e

    @staticmethod
    def _expect(data, kind: type, what: str):
        """Check the decoded body shape (None means an empty body)."""
        if data is not None and not isinstance(data, kind):
            raise ConsulClientError(f"Malformed {what}: expected {kind.__name__}, got {type(data).__name__}")
        return data

    async def peers(self) -> list[str]:
        """Get Raft peers.

        Returns:
            Peer addresses (``ip:port``)
        """
        data = self._expect(await self._get("/v1/status/peers"), list, "peer list")
        return list(data or [])

    async def nodes(self) -> list[Node]:
        """Get catalog nodes.

        Returns:
            List of nodes
        """
        data = self._expect(await self._get("/v1/catalog/nodes"), list, "node list")
        try:
            return [Node.model_validate(item) for item in data or []]
        except ValidationError as e:
            raise ConsulClientError(f"Malformed node list: {e}") from e

    async def service_names(self) -> list[str]:
        """Get names of all catalog services.

        Returns:
            Service names (the API maps names to tags, tags are ignored)
        """
        data = self._expect(await self._get("/v1/catalog/services"), dict, "service catalog")
        return list((data or {}).keys())

    async def service_health(self, name: str) -> list[ServiceHealthEntry]:
        """Get health entries of a service.

        Args:
            name: Service name

        Returns:
            One entry per service instance
        """
        data = self._expect(await self._get(f"/v1/health/service/{name}"), list, f"health entries for {name}")
        try:
            return [ServiceHealthEntry.from_api(item) for item in data or []]
        except (ValidationError, AttributeError, TypeError) as e:
            raise ConsulClientError(f"Malformed health entries for {name}: {e}") from e

    async def all_checks(self) -> list[HealthCheck]:
        """Get every health check regardless of state.

        Returns:
            List of checks
        """
        data = self._expect(await self._get(f"/v1/health/state/{HEALTH_STATE_ANY}"), list, "health checks")
        try:
            return [HealthCheck.model_validate(item) for item in data or []]
        except ValidationError as e:
            raise ConsulClientError(f"Malformed health checks: {e}") from e

    async def list_kv(self, prefix: str) -> list[KVPair]:
        """List key/value pairs recursively under a prefix.

        Args:
            prefix: Key prefix

        Returns:
            List of pairs (empty if nothing exists under the prefix)
        """
        data = await self._get(f"/v1/kv/{prefix.lstrip('/')}", params={"recurse": "true"}, allow_missing=True)
        data = self._expect(data, list, "key/value listing")
        try:
            return [KVPair.from_api(item) for item in data or []]
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise ConsulClientError(f"Malformed key/value listing: {e}") from e

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
