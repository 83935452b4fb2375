"""Core interfaces for dbctl."""

from dbctl.core.interfaces.capabilities import ReadinessCheck, RoleDetector, WriteLock
from dbctl.core.interfaces.manager import DBManager
from dbctl.core.interfaces.store import ClusterStore

__all__ = [
    # Manager contract
    "DBManager",
    # Capabilities
    "RoleDetector",
    "ReadinessCheck",
    "WriteLock",
    # Coordination store
    "ClusterStore",
]
