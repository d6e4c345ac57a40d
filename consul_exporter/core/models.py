"""Domain models for the Consul exporter.

Models mirror the subset of the Consul HTTP API payloads the exporter reads
and use Pydantic for validation. Field aliases match Consul's PascalCase keys
so API responses can be validated directly.
"""

import base64
from enum import Enum
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


class HealthStatus(str, Enum):
    """Health check status enumeration."""

    PASSING = "passing"
    WARNING = "warning"
    CRITICAL = "critical"
    MAINTENANCE = "maintenance"


class ConsulModel(BaseModel):
    """Base model accepting both API aliases and field names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class HealthCheck(ConsulModel):
    """A single health check result (node-level or bound to a service)."""

    check_id: str = Field(..., alias="CheckID", description="Check ID")
    node: str = Field(..., alias="Node", description="Node the check runs on")
    name: str = Field("", alias="Name", description="Check name")
    status: Union[HealthStatus, str] = Field(..., alias="Status", description="Check status")
    service_id: str = Field("", alias="ServiceID", description="Bound service ID (empty for node checks)")
    service_name: str = Field("", alias="ServiceName", description="Bound service name")

    @field_validator("service_id", "service_name", "name", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        """Consul may send null for unbound checks."""
        return v or ""

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v):
        """Map known statuses to the enum, keep unknown ones verbatim."""
        try:
            return HealthStatus(v)
        except ValueError:
            return v

    @property
    def is_passing(self) -> bool:
        """Check whether this check reports no problem."""
        return self.status == HealthStatus.PASSING

    @property
    def is_node_check(self) -> bool:
        """Check whether this check is not bound to a service."""
        return self.service_id == ""


class Node(ConsulModel):
    """Catalog node."""

    node: str = Field(..., alias="Node", description="Node name")
    address: str = Field("", alias="Address", description="Node address")
    datacenter: str = Field("", alias="Datacenter", description="Datacenter")


class ServiceHealthEntry(BaseModel):
    """One binding of a service to a node with its health checks."""

    service: str = Field(..., description="Service name")
    service_id: str = Field("", description="Service instance ID")
    node: str = Field(..., description="Node name")
    checks: list[HealthCheck] = Field(default_factory=list, description="Checks in API order")

    @classmethod
    def from_api(cls, data: dict) -> "ServiceHealthEntry":
        """Build an entry from a ``/v1/health/service/<name>`` element."""
        service = data.get("Service") or {}
        node = data.get("Node") or {}
        return cls(
            service=service.get("Service", ""),
            service_id=service.get("ID", ""),
            node=node.get("Node", ""),
            checks=[HealthCheck.model_validate(c) for c in data.get("Checks") or []],
        )

    @property
    def is_healthy(self) -> bool:
        """An entry is healthy when every check passes (vacuously true)."""
        return all(check.is_passing for check in self.checks)


class KVPair(ConsulModel):
    """Key/value pair from the KV store."""

    key: str = Field(..., alias="Key", description="Full key path")
    value: Optional[bytes] = Field(None, alias="Value", description="Raw value (None for folders)")

    @classmethod
    def from_api(cls, data: dict) -> "KVPair":
        """Build a pair from a ``/v1/kv`` element (value is base64 on the wire)."""
        raw = data.get("Value")
        return cls(key=data["Key"], value=base64.b64decode(raw) if raw is not None else None)
