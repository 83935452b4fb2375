"""MongoDB replica-set manager."""

import asyncio
import logging
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from dbctl.app.config import Settings
from dbctl.core.errors import LockPartiallyHeldError, ProtocolError
from dbctl.core.interfaces import RoleDetector, WriteLock
from dbctl.core.logging_schema import LogEvent
from dbctl.core.models import Role
from dbctl.core.models.state import ManagerState
from dbctl.engines.base import ManagerBase

logger = logging.getLogger(__name__)

_MEMBER_STATES = {
    "PRIMARY": Role.PRIMARY,
    "SECONDARY": Role.SECONDARY,
}


async def run_admin_command(admin: AsyncIOMotorDatabase, command: dict[str, Any]) -> dict:
    """Run a command on `admin` and insist on ok == 1."""
    response = await admin.command(command)
    if response.get("ok") != 1:
        raise ProtocolError(f"mongo says: {response.get('errmsg', '')}")
    return response


class ReplicaSetRoleDetector(RoleDetector):
    """Role from this member's stateStr in replSetGetStatus."""

    def __init__(self, admin: AsyncIOMotorDatabase) -> None:
        self._admin = admin

    async def get_member_state(self) -> str:
        """Lower-cased stateStr of the self member, "" if absent."""
        status = await run_admin_command(self._admin, {"replSetGetStatus": 1})
        for member in status.get("members", []):
            if member.get("self"):
                return str(member.get("stateStr", "")).lower()
        return ""

    async def detect(self) -> Role:
        state = await self.get_member_state()
        role = _MEMBER_STATES.get(state.upper())
        if role is None:
            logger.info(
                "Member state has no replica role",
                extra={"event": LogEvent.ROLE_DETECTED, "member_state": state},
            )
            return Role.UNKNOWN
        return role


class FsyncCountingLock(WriteLock):
    """fsync lock. Every lock stacks; unlock repeats until lockCount is zero.

    The unlock loop stops after `unlock_timeout` seconds or, if set,
    `max_unlock_attempts` commands, raising LockPartiallyHeldError.
    """

    def __init__(
        self,
        admin: AsyncIOMotorDatabase,
        unlock_timeout: float = 30.0,
        max_unlock_attempts: int | None = None,
    ) -> None:
        self._admin = admin
        self.unlock_timeout = unlock_timeout
        self.max_unlock_attempts = max_unlock_attempts

    async def lock(self, reason: str) -> None:
        response = await run_admin_command(
            self._admin, {"fsync": 1, "lock": True, "comment": reason}
        )
        logger.info(
            "fsync lock acquired",
            extra={"event": LogEvent.LOCKED, "lock_count": response.get("lockCount")},
        )

    async def unlock(self) -> None:
        attempts = 0
        remaining: int | None = None
        try:
            async with asyncio.timeout(self.unlock_timeout):
                while True:
                    response = await run_admin_command(self._admin, {"fsyncUnlock": 1})
                    attempts += 1
                    remaining = int(response.get("lockCount", 0))
                    if remaining <= 0:
                        return
                    if self.max_unlock_attempts is not None and attempts >= self.max_unlock_attempts:
                        raise LockPartiallyHeldError(
                            remaining,
                            f"lock still held after {attempts} unlock attempts (remaining={remaining})",
                        )
        except TimeoutError as e:
            raise LockPartiallyHeldError(
                remaining, f"unlock did not converge within {self.unlock_timeout}s"
            ) from e


class MongoDBManager(ManagerBase):
    ENGINE = "mongodb"

    def __init__(
        self,
        settings: Settings,
        state: ManagerState | None = None,
        client: AsyncIOMotorClient | None = None,
    ) -> None:
        super().__init__(settings, state)
        config = settings.mongodb
        if client is None:
            timeout_ms = int(config.operation_timeout * 1000)
            client = AsyncIOMotorClient(
                host=config.hosts,
                username=config.username or None,
                password=config.password or None,
                directConnection=config.direct,
                w="majority",
                serverSelectionTimeoutMS=timeout_ms,
                connectTimeoutMS=timeout_ms,
            )
        self._client = client
        self._admin = client["admin"]
        self.role_detector = ReplicaSetRoleDetector(self._admin)
        self.write_lock = FsyncCountingLock(
            self._admin,
            unlock_timeout=settings.lock.unlock_timeout,
            max_unlock_attempts=settings.lock.max_unlock_attempts,
        )

    async def ping(self) -> None:
        await self._admin.command("ping")

    async def shutdown(self) -> None:
        self._client.close()
