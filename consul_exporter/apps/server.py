"""Exporter web server.

FastAPI application serving a landing page and the Prometheus metrics path.
Every request to the metrics path runs one collection cycle and renders the
snapshot it published.
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import HTMLResponse, Response

from consul_exporter.core.config import Settings
from consul_exporter.core.consul import IConsulClient
from consul_exporter.data.consul_client import ConsulClient
from consul_exporter.monitoring.collector import ConsulCollector
from consul_exporter.monitoring.exposition import create_registry, render

logger = logging.getLogger(__name__)

LANDING_HTML = """<html>
<head><title>Consul Exporter</title></head>
<body>
<h1>Consul Exporter</h1>
<p><a href='{metrics_path}'>Metrics</a></p>
</body>
</html>
"""


def create_app(collector: ConsulCollector, metrics_path: str = "/metrics") -> FastAPI:
    """Create FastAPI application for the exporter.

    Args:
        collector: Collector run on every scrape
        metrics_path: Path under which to expose metrics

    Returns:
        FastAPI application
    """
    app = FastAPI(title="Consul Exporter", docs_url=None, redoc_url=None, openapi_url=None)
    registry = create_registry(collector.store)
    landing = LANDING_HTML.format(metrics_path=metrics_path)

    @app.get("/", response_class=HTMLResponse)
    async def index():
        """Serve landing page."""
        return HTMLResponse(content=landing)

    async def metrics():
        """Scrape Consul and expose the refreshed snapshot."""
        await collector.collect()
        body, content_type = render(registry)
        return Response(content=body, media_type=content_type)

    app.add_api_route(metrics_path, metrics, methods=["GET"], include_in_schema=False)
    app.state.collector = collector
    app.state.registry = registry
    return app


async def run_exporter_server(settings: Settings, client: Optional[IConsulClient] = None) -> None:
    """Run the exporter until interrupted.

    Args:
        settings: Application settings
        client: Consul client (an HTTP client is built from settings if omitted)
    """
    import uvicorn

    client = client or ConsulClient(settings.consul)
    collector = ConsulCollector.from_settings(client, settings)
    app = create_app(collector, settings.metrics_path)

    host, port = settings.listen_host_port
    logger.info(f"Starting Server: {settings.listen_address}")
    config = uvicorn.Config(app, host=host, port=port, log_level=settings.log_level.lower())
    server = uvicorn.Server(config)
    try:
        await server.serve()
    finally:
        await client.close()
