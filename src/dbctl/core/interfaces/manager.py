"""Database manager interface shared by every engine."""

from abc import ABC, abstractmethod

from dbctl.core.models import Role
from dbctl.core.models.state import ManagerState


class DBManager(ABC):
    """Abstract base class for per-engine database managers.

    Implementations must handle:
    - Probe timeout: is_running / is_startup_ready bound their own I/O
    - Sticky readiness: is_startup_ready latches True once observed
    - Explicit non-support: unsupported operations raise
      NotImplementedOperationError / NotSupportedError, never no-op
    - Confirmed state: `locked` changes only after the engine confirms

    All other methods run under the caller's deadline; wrap calls in
    `asyncio.timeout()` to bound them.
    """

    @property
    @abstractmethod
    def state(self) -> ManagerState:
        """Process-wide state (identity, latches, caches)."""
        ...

    @property
    def current_member_name(self) -> str:
        return self.state.member_name

    @property
    def is_locked(self) -> bool:
        return self.state.locked

    @abstractmethod
    async def is_running(self) -> bool:
        """Return True if the database accepts connections."""
        ...

    @abstractmethod
    async def is_startup_ready(self) -> bool:
        """Return True once the database has finished starting up (sticky)."""
        ...

    @abstractmethod
    async def get_replica_role(self) -> Role:
        """Detect the local replica role.

        Raises:
            Exception: Query or connection failures are propagated.
        """
        ...

    @abstractmethod
    async def lock(self, reason: str) -> None:
        """Block writes on the instance. No-op if already locked.

        Args:
            reason: Audit reason (e.g. "disk full").

        Raises:
            NotSupportedError: If the engine cannot block writes.
        """
        ...

    @abstractmethod
    async def unlock(self) -> None:
        """Re-enable writes. No-op if not locked.

        Raises:
            NotSupportedError: If the engine cannot block writes.
            LockPartiallyHeldError: If a counting lock did not fully clear.
        """
        ...

    @abstractmethod
    async def exec(self, statement: str) -> int:
        """Execute a statement and return the number of affected rows."""
        ...

    @abstractmethod
    async def query(self, statement: str) -> bytes:
        """Run a query and return the rows JSON-encoded."""
        ...

    @abstractmethod
    async def list_users(self) -> list[dict]:
        ...

    @abstractmethod
    async def create_user(self, user_name: str, password: str) -> None:
        ...

    @abstractmethod
    async def delete_user(self, user_name: str) -> None:
        ...

    @abstractmethod
    async def grant_role(self, user_name: str, role_name: str) -> None:
        ...

    @abstractmethod
    async def revoke_role(self, user_name: str, role_name: str) -> None:
        ...

    @abstractmethod
    async def shutdown(self) -> None:
        """Release connections. Called once at process shutdown."""
        ...
