"""Data module for the Consul exporter.

This module handles retrieval of catalog, health and key/value data from Consul.
"""

from consul_exporter.data.consul_client import ConsulClient

__all__ = [
    "ConsulClient",
]
