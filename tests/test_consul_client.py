"""Tests for the Consul HTTP client against a mocked API."""

import base64

import httpx
import pytest
from consul_exporter.core.config import ConsulConfig
from consul_exporter.core.consul import ConsulClientError
from consul_exporter.core.models import HealthStatus
from consul_exporter.data.consul_client import ConsulClient


ROUTES = {
    "/v1/status/peers": ["10.0.0.1:8300", "10.0.0.2:8300", "10.0.0.3:8300"],
    "/v1/catalog/nodes": [
        {"Node": "a", "Address": "10.0.0.1", "Datacenter": "dc1"},
        {"Node": "b", "Address": "10.0.0.2", "Datacenter": "dc1"},
    ],
    "/v1/catalog/services": {"consul": [], "web": ["http"]},
    "/v1/health/service/web": [
        {
            "Node": {"Node": "a"},
            "Service": {"ID": "web-1", "Service": "web"},
            "Checks": [
                {"Node": "a", "CheckID": "serfHealth", "Status": "passing", "ServiceID": ""},
                {"Node": "a", "CheckID": "service:web-1", "Status": "critical", "ServiceID": "web-1"},
            ],
        }
    ],
    "/v1/health/state/any": [
        {"Node": "a", "CheckID": "serfHealth", "Status": "passing", "ServiceID": "", "ServiceName": ""},
        {"Node": "a", "CheckID": "service:web-1", "Status": "critical", "ServiceID": "web-1", "ServiceName": "web"},
    ],
    "/v1/kv/config/": [
        {"Key": "config/", "Value": None},
        {"Key": "config/limit", "Value": base64.b64encode(b"12.5").decode()},
    ],
}


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/v1/kv/config/":
        assert request.url.params["recurse"] == "true"
    if request.url.path in ROUTES:
        return httpx.Response(200, json=ROUTES[request.url.path])
    return httpx.Response(404)


def _client(handler=_handler) -> ConsulClient:
    return ConsulClient(ConsulConfig(base_url="http://consul:8500"), transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_catalog_queries():
    async with _client() as client:
        assert await client.peers() == ["10.0.0.1:8300", "10.0.0.2:8300", "10.0.0.3:8300"]
        nodes = await client.nodes()
        assert [n.node for n in nodes] == ["a", "b"]
        assert await client.service_names() == ["consul", "web"]


@pytest.mark.asyncio
async def test_service_health():
    async with _client() as client:
        entries = await client.service_health("web")
    assert len(entries) == 1
    entry = entries[0]
    assert (entry.service, entry.node) == ("web", "a")
    assert [c.status for c in entry.checks] == [HealthStatus.PASSING, HealthStatus.CRITICAL]
    assert entry.is_healthy is False


@pytest.mark.asyncio
async def test_all_checks():
    async with _client() as client:
        checks = await client.all_checks()
    assert [c.is_node_check for c in checks] == [True, False]


@pytest.mark.asyncio
async def test_list_kv_decodes_values():
    async with _client() as client:
        pairs = await client.list_kv("config/")
    assert {p.key: p.value for p in pairs} == {"config/": None, "config/limit": b"12.5"}


@pytest.mark.asyncio
async def test_list_kv_missing_prefix_is_empty():
    async with _client() as client:
        assert await client.list_kv("absent/") == []


@pytest.mark.asyncio
async def test_http_error_raises_client_error():
    def failing(request):
        return httpx.Response(500, text="rpc error")

    async with _client(failing) as client:
        with pytest.raises(ConsulClientError):
            await client.peers()


@pytest.mark.asyncio
async def test_transport_error_raises_client_error():
    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(unreachable) as client:
        with pytest.raises(ConsulClientError):
            await client.nodes()


@pytest.mark.asyncio
async def test_invalid_json_raises_client_error():
    def garbage(request):
        return httpx.Response(200, text="not json")

    async with _client(garbage) as client:
        with pytest.raises(ConsulClientError):
            await client.service_names()


def _serving(path: str, body) -> ConsulClient:
    def handler(request):
        if request.url.path == path:
            return httpx.Response(200, json=body)
        return _handler(request)

    return _client(handler)


@pytest.mark.asyncio
async def test_service_catalog_of_wrong_shape_raises_client_error():
    async with _serving("/v1/catalog/services", ["web"]) as client:
        with pytest.raises(ConsulClientError):
            await client.service_names()


@pytest.mark.asyncio
async def test_kv_listing_of_wrong_shape_raises_client_error():
    async with _serving("/v1/kv/config/", {"Key": "config/limit", "Value": None}) as client:
        with pytest.raises(ConsulClientError):
            await client.list_kv("config/")


@pytest.mark.asyncio
async def test_kv_listing_with_non_object_items_raises_client_error():
    async with _serving("/v1/kv/config/", ["config/limit"]) as client:
        with pytest.raises(ConsulClientError):
            await client.list_kv("config/")


@pytest.mark.asyncio
async def test_scalar_bodies_raise_client_error():
    async with _serving("/v1/status/peers", 3) as client:
        with pytest.raises(ConsulClientError):
            await client.peers()
    async with _serving("/v1/health/state/any", "passing") as client:
        with pytest.raises(ConsulClientError):
            await client.all_checks()
    async with _serving("/v1/health/service/web", [{"Service": {"Service": "web"}, "Checks": 5}]) as client:
        with pytest.raises(ConsulClientError):
            await client.service_health("web")
