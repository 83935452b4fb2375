"""Capability interfaces injected into managers.

Behaviours that vary between engines of one family (how the role is
detected, what "startup ready" means, how writes are blocked) are strategy
objects chosen at construction instead of subclass overrides.
"""

from abc import ABC, abstractmethod

from dbctl.core.models import Role


class RoleDetector(ABC):
    """Turns engine-specific introspection into a canonical Role."""

    @abstractmethod
    async def detect(self) -> Role:
        """Detect the local role.

        Raises:
            ProtocolError: If the engine answered with something unexpected.
            Exception: Query or connection failures are propagated.
        """
        ...


class ReadinessCheck(ABC):
    """Extra condition, beyond connectivity, for startup readiness."""

    @abstractmethod
    async def check(self) -> bool:
        ...


class WriteLock(ABC):
    """Native write-protection toggle of an engine.

    Implementations only talk to the engine; the manager owns the `locked`
    flag and flips it after these calls return successfully.
    """

    @abstractmethod
    async def lock(self, reason: str) -> None:
        ...

    @abstractmethod
    async def unlock(self) -> None:
        ...
