"""Core module for the Consul exporter.

This module contains domain models, configuration, constants and the backend
client interface.
"""

from consul_exporter.core.config import Settings, ConsulConfig
from consul_exporter.core.consul import IConsulClient, ConsulClientError
from consul_exporter.core.models import (
    HealthStatus,
    HealthCheck,
    Node,
    ServiceHealthEntry,
    KVPair,
)
from consul_exporter.core.constants import (
    NAMESPACE,
    DEFAULT_LISTEN_ADDRESS,
    DEFAULT_METRICS_PATH,
    DEFAULT_CONSUL_SERVER,
    DEFAULT_KV_FILTER,
)

__all__ = [
    "Settings",
    "ConsulConfig",
    "IConsulClient",
    "ConsulClientError",
    "HealthStatus",
    "HealthCheck",
    "Node",
    "ServiceHealthEntry",
    "KVPair",
    "NAMESPACE",
    "DEFAULT_LISTEN_ADDRESS",
    "DEFAULT_METRICS_PATH",
    "DEFAULT_CONSUL_SERVER",
    "DEFAULT_KV_FILTER",
]
