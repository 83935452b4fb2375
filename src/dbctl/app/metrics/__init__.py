"""Prometheus metrics module."""

from prometheus_client import start_http_server

from dbctl.app.metrics.collector import REPLICA_ROLE
from dbctl.core.models import Role


def setup_metrics(port: int) -> None:
    """Expose the default registry on `port`."""
    start_http_server(port)


def record_role(role: Role) -> None:
    """Set the role gauge so exactly one role label reads 1."""
    for candidate in Role:
        REPLICA_ROLE.labels(role=candidate.value).set(1 if candidate is role else 0)
