"""Configuration management using Pydantic Settings.

This module handles loading configuration from environment variables
and provides type-safe configuration objects.
"""

import re
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from consul_exporter.core.constants import (
    DEFAULT_CONSUL_SERVER,
    DEFAULT_KV_FILTER,
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_LOG_LEVEL,
    DEFAULT_METRICS_PATH,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
)


class ConsulConfig(BaseModel):
    """Consul HTTP API connection configuration."""

    base_url: str = Field(..., description="Consul HTTP API base URL")
    timeout_seconds: float = Field(DEFAULT_REQUEST_TIMEOUT_SECONDS, description="Per-request timeout in seconds")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CONSUL_EXPORTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Web listener
    listen_address: str = Field(DEFAULT_LISTEN_ADDRESS, description="Address to listen on for web interface and telemetry")
    metrics_path: str = Field(DEFAULT_METRICS_PATH, description="Path under which to expose metrics")

    # Consul
    consul_server: str = Field(DEFAULT_CONSUL_SERVER, description="HTTP API address of a Consul server or agent")
    request_timeout_seconds: float = Field(DEFAULT_REQUEST_TIMEOUT_SECONDS, description="Timeout for a single Consul request")
    scrape_timeout_seconds: Optional[float] = Field(None, description="Deadline for one collection cycle (disabled when unset)")

    # Key/value export
    kv_prefix: str = Field("", description="Prefix from which to expose key/value pairs (empty disables)")
    kv_filter: str = Field(DEFAULT_KV_FILTER, description="Regex that determines which keys to expose")

    # Logging
    log_level: str = Field(DEFAULT_LOG_LEVEL, description="Logging level")

    @field_validator("metrics_path", mode="after")
    @classmethod
    def normalize_metrics_path(cls, v: str) -> str:
        """Metrics path must be absolute."""
        if not v.startswith("/"):
            return "/" + v
        return v

    @field_validator("kv_filter", mode="after")
    @classmethod
    def validate_kv_filter(cls, v: str) -> str:
        """Reject filters that are not valid regular expressions."""
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid kv filter {v!r}: {e}") from e
        return v

    @field_validator("scrape_timeout_seconds", mode="after")
    @classmethod
    def validate_scrape_timeout(cls, v: Optional[float]) -> Optional[float]:
        """Non-positive deadlines disable the scrape timeout."""
        if v is not None and v <= 0:
            return None
        return v

    @property
    def kv_pattern(self) -> re.Pattern:
        """Compiled key filter."""
        return re.compile(self.kv_filter)

    @property
    def consul(self) -> ConsulConfig:
        """Get Consul connection configuration.

        Accepts both a bare ``host:port`` and a full URL; plain HTTP is assumed
        when no scheme is given.
        """
        server = self.consul_server.strip().rstrip("/")
        if "://" not in server:
            server = f"http://{server}"
        return ConsulConfig(base_url=server, timeout_seconds=self.request_timeout_seconds)

    @property
    def listen_host_port(self) -> tuple[str, int]:
        """Split listen address into host and port (``:9107`` binds all interfaces)."""
        host, _, port = self.listen_address.rpartition(":")
        if not port.isdigit():
            raise ValueError(f"invalid listen address: {self.listen_address}")
        return (host.strip("[]") or "0.0.0.0", int(port))

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls()
