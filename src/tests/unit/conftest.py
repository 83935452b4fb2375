"""Shared fixtures for dbctl unit tests."""

from unittest.mock import AsyncMock

import pytest

from dbctl.app.config import IdentityConfig, LockConfig, ProbeConfig, Settings
from dbctl.core.models.state import ManagerState
from dbctl.infra.sql import SQLClient


def make_settings(pod_name: str = "test-mysql-0", **overrides) -> Settings:
    identity = IdentityConfig(
        pod_name=pod_name,
        pod_ip="10.0.0.10",
        pod_fqdn=f"{pod_name}.test-headless.default.svc.cluster.local",
        host_ip="192.168.1.10",
        namespace="default",
        cluster_name="test",
        component_name="mysql",
        cluster_comp_name="test-mysql",
    )
    fields = {
        "identity": identity,
        "probe": ProbeConfig(timeout=0.2),
        "lock": LockConfig(unlock_timeout=1.0),
    }
    fields.update(overrides)
    return Settings(**fields)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def state(settings: Settings) -> ManagerState:
    return ManagerState.from_identity(settings.identity)


@pytest.fixture
def mock_sql() -> AsyncMock:
    """SQLClient mock; tests set fetch_row / fetch_rows / query_json behaviour."""
    client = AsyncMock(spec=SQLClient)
    client.execute = AsyncMock(return_value=0)
    client.fetch_rows = AsyncMock(return_value=[])
    client.fetch_row = AsyncMock(return_value=None)
    return client


@pytest.fixture
def settings_factory():
    """Build Settings for a given pod name and overridden config groups."""
    return make_settings
