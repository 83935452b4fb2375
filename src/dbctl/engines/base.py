"""Shared manager behaviour.

ManagerBase implements the parts of the DBManager contract that are the same
for every engine:
- probes bounded by settings.probe.timeout
- the sticky startup latch
- idempotent lock/unlock around an injected WriteLock
- role detection timing and error accounting around an injected RoleDetector

Engines supply `ping()` plus whichever capabilities they have. Anything left
unset fails loudly with NotImplementedOperationError / NotSupportedError.
"""

import asyncio
import logging
import time
from collections.abc import Iterable
from typing import ClassVar

from dbctl.app.config import Settings
from dbctl.app.metrics import record_role
from dbctl.app.metrics.collector import (
    DB_LOCKED,
    DB_STARTUP_READY,
    ROLE_DETECTION_DURATION,
    ROLE_DETECTION_ERRORS,
)
from dbctl.core.errors import NotImplementedOperationError, NotSupportedError
from dbctl.core.interfaces import DBManager, ReadinessCheck, RoleDetector, WriteLock
from dbctl.core.logging_schema import LogEvent
from dbctl.core.models import Role
from dbctl.core.models.state import ManagerState
from dbctl.core.retryable import classify_error

logger = logging.getLogger(__name__)


class ManagerBase(DBManager):
    ENGINE: ClassVar[str] = ""

    def __init__(
        self,
        settings: Settings,
        state: ManagerState | None = None,
        *,
        role_detector: RoleDetector | None = None,
        readiness_checks: Iterable[ReadinessCheck] = (),
        write_lock: WriteLock | None = None,
    ) -> None:
        self._settings = settings
        self._state = state or ManagerState.from_identity(
            settings.identity, data_dir=settings.engine.data_dir
        )
        self._lock = asyncio.Lock()
        self.engine_name = self.ENGINE
        self.role_detector = role_detector
        self.readiness_checks = list(readiness_checks)
        self.write_lock = write_lock

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def probe_timeout(self) -> float:
        return self._settings.probe.timeout

    # =========================================================================
    # Probes
    # =========================================================================

    async def ping(self) -> None:
        """Round-trip to the engine. Raises on any failure."""
        raise NotImplementedOperationError(f"ping is not implemented for {self.engine_name}")

    def running_despite(self, exc: Exception) -> bool:
        """Errors that still prove the server process is up."""
        return False

    async def is_running(self) -> bool:
        try:
            async with asyncio.timeout(self.probe_timeout):
                await self.ping()
        except TimeoutError:
            logger.info(
                "DB is not running: probe timed out",
                extra={"event": LogEvent.DB_NOT_READY, "engine": self.engine_name},
            )
            return False
        except Exception as e:
            if self.running_despite(e):
                return True
            logger.info(
                "DB is not running",
                extra={"event": LogEvent.DB_NOT_READY, "engine": self.engine_name, "error": str(e)},
            )
            return False
        return True

    async def is_startup_ready(self) -> bool:
        if self._state.startup.is_set:
            return True

        try:
            async with asyncio.timeout(self.probe_timeout):
                await self.ping()
                for check in self.readiness_checks:
                    if not await check.check():
                        return False
        except TimeoutError:
            return False
        except Exception as e:
            logger.info(
                "DB is not startup ready",
                extra={"event": LogEvent.DB_NOT_READY, "engine": self.engine_name, "error": str(e)},
            )
            return False

        async with self._lock:
            if self._state.startup.set():
                DB_STARTUP_READY.set(1)
                logger.info(
                    "DB startup ready",
                    extra={"event": LogEvent.DB_READY, "engine": self.engine_name},
                )
        return True

    # =========================================================================
    # Role
    # =========================================================================

    async def get_replica_role(self) -> Role:
        if self.role_detector is None:
            raise NotImplementedOperationError(
                f"role detection is not implemented for {self.engine_name}"
            )

        start = time.perf_counter()
        try:
            role = await self.role_detector.detect()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            ROLE_DETECTION_ERRORS.labels(
                engine=self.engine_name, error_class=classify_error(e)
            ).inc()
            logger.warning(
                "Role detection failed",
                extra={
                    "event": LogEvent.ROLE_DETECTION_FAILED,
                    "engine": self.engine_name,
                    "error_type": type(e).__name__,
                    "error": str(e),
                },
            )
            raise
        finally:
            ROLE_DETECTION_DURATION.labels(engine=self.engine_name).observe(
                time.perf_counter() - start
            )

        record_role(role)
        logger.debug(
            "Role detected",
            extra={"event": LogEvent.ROLE_DETECTED, "engine": self.engine_name, "role": role.value},
        )
        return role

    # =========================================================================
    # Write protection
    # =========================================================================

    def _require_write_lock(self) -> WriteLock:
        if self.write_lock is None:
            raise NotSupportedError(f"lock is not supported by {self.engine_name}")
        return self.write_lock

    async def lock(self, reason: str) -> None:
        write_lock = self._require_write_lock()

        async with self._lock:
            if self._state.locked:
                logger.info(
                    "DB already locked",
                    extra={"event": LogEvent.LOCKED, "engine": self.engine_name, "reason": reason},
                )
                return

            try:
                await write_lock.lock(reason)
            except Exception as e:
                logger.warning(
                    "Lock DB failed",
                    extra={
                        "event": LogEvent.LOCK_FAILED,
                        "engine": self.engine_name,
                        "reason": reason,
                        "error": str(e),
                    },
                )
                raise

            self._state.locked = True
            DB_LOCKED.set(1)
            logger.info(
                "DB locked",
                extra={"event": LogEvent.LOCKED, "engine": self.engine_name, "reason": reason},
            )

    async def unlock(self) -> None:
        write_lock = self._require_write_lock()

        async with self._lock:
            if not self._state.locked:
                logger.info(
                    "DB is not locked",
                    extra={"event": LogEvent.UNLOCKED, "engine": self.engine_name},
                )
                return

            try:
                await write_lock.unlock()
            except Exception as e:
                logger.warning(
                    "Unlock DB failed",
                    extra={"event": LogEvent.UNLOCK_FAILED, "engine": self.engine_name, "error": str(e)},
                )
                raise

            self._state.locked = False
            DB_LOCKED.set(0)
            logger.info("DB unlocked", extra={"event": LogEvent.UNLOCKED, "engine": self.engine_name})

    # =========================================================================
    # Statements and accounts (not meaningful for every engine)
    # =========================================================================

    def _not_implemented(self, operation: str) -> NotImplementedOperationError:
        return NotImplementedOperationError(f"{operation} is not implemented for {self.engine_name}")

    async def exec(self, statement: str) -> int:
        raise self._not_implemented("exec")

    async def query(self, statement: str) -> bytes:
        raise self._not_implemented("query")

    async def list_users(self) -> list[dict]:
        raise self._not_implemented("list_users")

    async def create_user(self, user_name: str, password: str) -> None:
        raise self._not_implemented("create_user")

    async def delete_user(self, user_name: str) -> None:
        raise self._not_implemented("delete_user")

    async def grant_role(self, user_name: str, role_name: str) -> None:
        raise self._not_implemented("grant_role")

    async def revoke_role(self, user_name: str, role_name: str) -> None:
        raise self._not_implemented("revoke_role")

    async def shutdown(self) -> None:
        pass
