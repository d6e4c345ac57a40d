"""Main CLI application for the Consul exporter.

Usage:
    python -m consul_exporter.apps.main run [--consul.server HOST:PORT] [--kv.prefix PREFIX]
    python -m consul_exporter.apps.main scrape
    python -m consul_exporter.apps.main config-show
"""

import asyncio
import logging
import sys
from typing import Optional
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape

from consul_exporter.core.config import Settings
from consul_exporter.data.consul_client import ConsulClient
from consul_exporter.monitoring.collector import ConsulCollector
from consul_exporter.monitoring.snapshot import MetricsSnapshot
from consul_exporter.apps.server import run_exporter_server
from consul_exporter.utils.logging import resolve_level, setup_logging

# Setup logging (rich handler with service-safe format)
setup_logging(level=logging.INFO)
logger = logging.getLogger(__name__)

app = typer.Typer(help="Consul Exporter CLI - expose Consul health and key/value state to Prometheus")
console = Console()


def _load_settings(
    listen_address: Optional[str] = None,
    metrics_path: Optional[str] = None,
    consul_server: Optional[str] = None,
    kv_prefix: Optional[str] = None,
    kv_filter: Optional[str] = None,
    scrape_timeout: Optional[float] = None,
    log_level: Optional[str] = None,
) -> Settings:
    """Load settings from the environment and apply CLI overrides.

    Exits with status 1 on invalid configuration (e.g. a bad kv filter).
    """
    overrides = {
        "listen_address": listen_address,
        "metrics_path": metrics_path,
        "consul_server": consul_server,
        "kv_prefix": kv_prefix,
        "kv_filter": kv_filter,
        "scrape_timeout_seconds": scrape_timeout,
        "log_level": log_level,
    }
    try:
        settings = Settings.from_env()
        changes = {k: v for k, v in overrides.items() if v is not None}
        if changes:
            # Re-validate so overrides go through the same checks as env vars
            settings = Settings(**{**settings.model_dump(), **changes})
    except ValidationError as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        sys.exit(1)
    logging.getLogger().setLevel(resolve_level(settings.log_level))
    return settings


@app.command(help="Run the exporter. Examples:\n  python -m consul_exporter.apps.main run --consul.server consul:8500\n  python -m consul_exporter.apps.main run --kv.prefix config/ --kv.filter 'limits/.*'")
def run(
    listen_address: Optional[str] = typer.Option(None, "--web.listen-address", help="Address to listen on for web interface and telemetry (default :9107)"),
    metrics_path: Optional[str] = typer.Option(None, "--web.telemetry-path", help="Path under which to expose metrics (default /metrics)"),
    consul_server: Optional[str] = typer.Option(None, "--consul.server", help="HTTP API address of a Consul server or agent (default localhost:8500)"),
    kv_prefix: Optional[str] = typer.Option(None, "--kv.prefix", help="Prefix from which to expose key/value pairs"),
    kv_filter: Optional[str] = typer.Option(None, "--kv.filter", help="Regex that determines which keys to expose (default .*)"),
    scrape_timeout: Optional[float] = typer.Option(None, "--scrape-timeout", help="Deadline for one scrape in seconds"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level: DEBUG|INFO|WARNING|ERROR"),
):
    """Run the exporter web server."""
    settings = _load_settings(listen_address, metrics_path, consul_server, kv_prefix, kv_filter, scrape_timeout, log_level)

    console.print(Panel.fit("Starting Consul Exporter", style="bold green"))
    console.print(f"[cyan]Metrics: http://{settings.listen_address}{settings.metrics_path}[/cyan]")

    try:
        asyncio.run(run_exporter_server(settings))
    except KeyboardInterrupt:
        console.print("\n[yellow]Exporter stopped by user[/yellow]")
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        logger.exception("Error running exporter")
        sys.exit(1)


async def _scrape_once(settings: Settings) -> MetricsSnapshot:
    async with ConsulClient(settings.consul) as client:
        collector = ConsulCollector.from_settings(client, settings)
        return await collector.collect()


def _snapshot_table(snapshot: MetricsSnapshot) -> Table:
    table = Table(title="Consul Snapshot", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Labels", style="white")
    table.add_column("Value", style="magenta", justify="right")
    for name, labels, value in snapshot.samples():
        table.add_row(name, ", ".join(labels) or "-", f"{value:g}")
    return table


@app.command(help="Run a single collection cycle and print the resulting gauges.")
def scrape(
    consul_server: Optional[str] = typer.Option(None, "--consul.server", help="HTTP API address of a Consul server or agent"),
    kv_prefix: Optional[str] = typer.Option(None, "--kv.prefix", help="Prefix from which to expose key/value pairs"),
    kv_filter: Optional[str] = typer.Option(None, "--kv.filter", help="Regex that determines which keys to expose"),
    scrape_timeout: Optional[float] = typer.Option(None, "--scrape-timeout", help="Deadline for the scrape in seconds"),
):
    """Scrape Consul once."""
    settings = _load_settings(consul_server=consul_server, kv_prefix=kv_prefix, kv_filter=kv_filter, scrape_timeout=scrape_timeout)
    try:
        snapshot = asyncio.run(_scrape_once(settings))
    except Exception as e:
        console.print(f"[red]Scrape error: {e}[/red]")
        logger.exception("Scrape error")
        sys.exit(1)

    console.print(_snapshot_table(snapshot))
    if not snapshot.up:
        console.print(f"[red]Consul at {settings.consul.base_url} is not reachable[/red]")
        sys.exit(1)


@app.command(help="Show effective configuration (after environment and CLI overrides).")
def config_show():
    settings = _load_settings()
    table = Table(title="Effective Configuration", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Listen Address", settings.listen_address)
    table.add_row("Metrics Path", settings.metrics_path)
    table.add_row("Consul URL", settings.consul.base_url)
    table.add_row("Request Timeout (s)", str(settings.request_timeout_seconds))
    table.add_row("Scrape Timeout (s)", str(settings.scrape_timeout_seconds or "disabled"))
    table.add_row("KV Prefix", settings.kv_prefix or "(disabled)")
    table.add_row("KV Filter", settings.kv_filter)
    table.add_row("Log Level", settings.log_level)
    console.print(table)


if __name__ == "__main__":
    app()
