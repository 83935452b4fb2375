"""Per-process manager state.

ManagerState lives as long as the process and is owned by the single
manager instance. Writes happen only under the manager's asyncio.Lock.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from dbctl.app.config import IdentityConfig
from dbctl.core.errors import ConfigurationError


class Readiness(StrEnum):
    NOT_READY = "not_ready"
    READY = "ready"


class StartupLatch:
    """One-way NOT_READY -> READY latch.

    Once the database has been observed ready the latch never resets, so a
    transient blip after startup cannot flap the startup probe.
    """

    __slots__ = ("_state",)

    def __init__(self) -> None:
        self._state = Readiness.NOT_READY

    @property
    def state(self) -> Readiness:
        return self._state

    @property
    def is_set(self) -> bool:
        return self._state is Readiness.READY

    def set(self) -> bool:
        """Latch to READY. Returns True only on the first transition."""
        if self._state is Readiness.READY:
            return False
        self._state = Readiness.READY
        return True


@dataclass
class ManagerState:
    """Identity, latches and caches of the process-wide manager."""

    member_name: str
    member_ip: str = ""
    cluster_name: str = ""
    component_name: str = ""
    cluster_comp_name: str = ""
    namespace: str = ""
    data_dir: str = ""
    startup: StartupLatch = field(default_factory=StartupLatch)
    locked: bool = False
    cache: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_identity(cls, identity: IdentityConfig, data_dir: str = "") -> "ManagerState":
        """Build state from environment-derived identity.

        Raises:
            ConfigurationError: If the pod name is not set.
        """
        if not identity.pod_name:
            raise ConfigurationError("pod name is not set")
        return cls(
            member_name=identity.pod_name,
            member_ip=identity.pod_ip,
            cluster_name=identity.cluster_name,
            component_name=identity.component_name,
            cluster_comp_name=identity.cluster_comp_name,
            namespace=identity.namespace,
            data_dir=data_dir,
        )
