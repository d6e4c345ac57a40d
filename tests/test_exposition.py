"""Tests for Prometheus exposition and the web app."""

import httpx
import pytest
from fastapi.testclient import TestClient
from prometheus_client.parser import text_string_to_metric_families

from consul_exporter.apps.server import create_app
from consul_exporter.core.config import ConsulConfig
from consul_exporter.data.consul_client import ConsulClient
from consul_exporter.monitoring.collector import ConsulCollector
from consul_exporter.monitoring.exposition import GAUGES, build_families, create_registry, render
from consul_exporter.monitoring.snapshot import MetricsSnapshot, SnapshotStore


def _samples(text: str) -> dict:
    return {
        (sample.name, tuple(sorted(sample.labels.items()))): sample.value
        for family in text_string_to_metric_families(text)
        for sample in family.samples
    }


def test_build_families_covers_every_gauge():
    snapshot = MetricsSnapshot(
        up=1.0,
        service_nodes={"web": 2.0},
        service_node_healthy={("web", "a"): 1.0},
        agent_checks={("serfHealth", "a"): 0.0},
        key_values={"config/limit": 12.5},
    )
    families = {family.name: family for family in build_families(snapshot)}
    assert set(families) == {spec.name for spec in GAUGES}
    assert families["consul_up"].samples[0].value == 1.0
    assert families["consul_catalog_service_node_healthy"].samples[0].labels == {"service": "web", "node": "a"}
    assert families["consul_agent_check"].samples[0].labels == {"check": "serfHealth", "node": "a"}
    assert families["consul_catalog_kv"].samples[0].labels == {"key": "config/limit"}


def test_registry_renders_published_snapshot():
    store = SnapshotStore()
    store._current = MetricsSnapshot(up=1.0, raft_peers=3.0, key_values={"config/limit": 12.5})
    body, content_type = render(create_registry(store))
    samples = _samples(body.decode())
    assert content_type.startswith("text/plain")
    assert samples[("consul_up", ())] == 1.0
    assert samples[("consul_raft_peers", ())] == 3.0
    assert samples[("consul_catalog_kv", (("key", "config/limit"),))] == 12.5


def test_metrics_endpoint_scrapes_consul(consul):
    app = create_app(ConsulCollector(consul))
    with TestClient(app) as client:
        response = client.get("/metrics")
    assert response.status_code == 200
    samples = _samples(response.text)
    assert samples[("consul_up", ())] == 1.0
    assert samples[("consul_serf_lan_members", ())] == 2.0
    assert samples[("consul_catalog_service_nodes", (("service", "web"),))] == 2.0
    assert samples[("consul_catalog_service_node_healthy", (("node", "b"), ("service", "web")))] == 0.0
    assert samples[("consul_catalog_service_entries_by_node_healthy", (("node", "a"), ("service", "web")))] == 1.0


def test_metrics_endpoint_ok_when_consul_down(consul):
    consul.failing.add("peers")
    app = create_app(ConsulCollector(consul))
    with TestClient(app) as client:
        response = client.get("/metrics")
    assert response.status_code == 200
    assert _samples(response.text)[("consul_up", ())] == 0.0


def test_metrics_endpoint_ok_when_service_catalog_is_malformed():
    """A catalog body of the wrong shape is a query failure, not a server error."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/status/peers":
            return httpx.Response(200, json=["10.0.0.1:8300"])
        if request.url.path == "/v1/catalog/services":
            return httpx.Response(200, json=["web"])
        return httpx.Response(200, json=[])

    client = ConsulClient(ConsulConfig(base_url="http://consul:8500"), transport=httpx.MockTransport(handler))
    app = create_app(ConsulCollector(client))
    with TestClient(app) as http:
        response = http.get("/metrics")
    assert response.status_code == 200
    samples = _samples(response.text)
    assert samples[("consul_up", ())] == 1.0
    assert samples[("consul_catalog_services", ())] == 0.0


@pytest.mark.parametrize("path", ["/metrics", "/stats"])
def test_landing_page_links_metrics_path(consul, path):
    app = create_app(ConsulCollector(consul), metrics_path=path)
    with TestClient(app) as client:
        index = client.get("/")
        metrics = client.get(path)
    assert index.status_code == 200
    assert f"href='{path}'" in index.text
    assert metrics.status_code == 200
