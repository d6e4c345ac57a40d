"""Shared fixtures."""

import pytest

from consul_exporter.core.models import HealthStatus
from tests.fakes import FakeConsulClient, make_check, make_entry


@pytest.fixture
def consul():
    """Backend from the end-to-end example: 3 peers, 2 nodes, service web on a and b."""
    return FakeConsulClient(
        peers=["10.0.0.1:8300", "10.0.0.2:8300", "10.0.0.3:8300"],
        nodes=["a", "b"],
        services={
            "web": [
                make_entry("web", "a", HealthStatus.PASSING, HealthStatus.PASSING),
                make_entry("web", "b", HealthStatus.PASSING, HealthStatus.CRITICAL),
            ],
        },
        checks=[
            make_check("serfHealth", "a"),
            make_check("serfHealth", "b", HealthStatus.CRITICAL),
            make_check("service:web:0", "a", service_id="web"),
        ],
    )
