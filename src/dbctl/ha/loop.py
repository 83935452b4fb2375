"""HA loop - periodic reconciliation of local role and cluster lease.

One cycle (tick):
1. Fetch a fresh cluster snapshot; a stored HaConfig overrides the local
   period and lease TTL, and disabling HA skips the rest
2. A pending switchover naming us as leader: release lease, clear request
3. Detect the local role
4. Writable role: renew the lease if held, else try to acquire it
5. Non-writable role while holding: release

Errors never stop the loop; they are classified and logged, and the next
cycle starts after the health check period.
"""

import asyncio
import logging
import time

from dbctl.app.metrics.collector import HA_TICK_DURATION
from dbctl.core.errors import LeaseLostError
from dbctl.core.interfaces import ClusterStore, DBManager
from dbctl.core.logging_schema import ErrorClass, LogEvent
from dbctl.core.models import Cluster, Member
from dbctl.core.retryable import classify_error
from dbctl.ha.lease import LeaseCoordinator

logger = logging.getLogger(__name__)

_ERROR_CLASSES = {
    "retryable": ErrorClass.TRANSIENT,
    "permanent": ErrorClass.PERMANENT,
    "unknown": ErrorClass.UNKNOWN,
}


def error_class(exc: Exception) -> ErrorClass:
    if isinstance(exc, TimeoutError):
        return ErrorClass.TIMEOUT
    return _ERROR_CLASSES[classify_error(exc)]


class HaLoop:
    def __init__(
        self,
        manager: DBManager,
        store: ClusterStore,
        lease: LeaseCoordinator,
        interval: float = 5.0,
        member_address: str = "",
    ) -> None:
        self._manager = manager
        self._store = store
        self._lease = lease
        self._interval = interval
        self._member_address = member_address
        self._running = False
        # After honoring a switchover, stay out of the election for one TTL
        self._yield_until = 0.0

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._running

    def stop(self) -> None:
        self._running = False

    async def _handle_switchover(self, cluster: Cluster) -> bool:
        """Honor a switchover that names us as leader. Returns True if handled."""
        switchover = cluster.switchover
        member = self._manager.current_member_name
        if switchover is None or switchover.leader != member:
            return False

        await self._lease.release_lease()
        await self._store.delete_switchover()
        self._yield_until = time.monotonic() + self._lease.ttl
        logger.info(
            "Switchover honored",
            extra={
                "event": LogEvent.SWITCHOVER_HONORED,
                "leader": switchover.leader,
                "candidate": switchover.candidate,
            },
        )
        return True

    async def tick(self) -> None:
        """Execute one reconciliation cycle."""
        cluster = await self._store.get_cluster()
        ha_config = cluster.ha_config
        if ha_config is not None:
            self._interval = ha_config.health_check_period
            self._lease.ttl = ha_config.ttl
            if not ha_config.enable:
                return

        if await self._handle_switchover(cluster):
            return

        role = await self._manager.get_replica_role()

        if role.is_writable:
            if self._lease.has_lease():
                await self._lease.update_lease()
            elif time.monotonic() >= self._yield_until:
                await self._lease.attempt_acquire_lease()
        elif self._lease.has_lease():
            logger.info(
                "Local role is not writable, releasing lease",
                extra={"event": LogEvent.LEASE_RELEASED, "role": role.value},
            )
            await self._lease.release_lease()

    async def _execute_tick(self) -> None:
        """Execute tick, logging errors. Cancellation propagates."""
        start = time.perf_counter()
        try:
            await self.tick()
        except LeaseLostError as e:
            logger.warning(
                "Lease lost during tick",
                extra={"event": LogEvent.LEASE_LOST, "error": str(e)},
            )
        except Exception as e:
            logger.warning(
                "Error in tick: %s",
                e,
                extra={
                    "event": LogEvent.DB_ERROR,
                    "error_type": type(e).__name__,
                    "error_class": error_class(e),
                },
            )
        finally:
            HA_TICK_DURATION.observe(time.perf_counter() - start)

    async def _register_member(self) -> None:
        member = Member(
            name=self._manager.current_member_name, address=self._member_address
        )
        try:
            await self._store.add_member(member)
        except Exception as e:
            logger.warning(
                "Error registering member",
                extra={"event": LogEvent.DB_ERROR, "error": str(e)},
            )

    async def run(self) -> None:
        """Main HA loop."""
        self._running = True
        logger.info("Starting HA loop", extra={"event": LogEvent.APP_STARTED})
        await self._register_member()

        try:
            while self._running:
                await self._execute_tick()
                await asyncio.sleep(self._interval)
        finally:
            await self._cleanup()

    async def _cleanup(self) -> None:
        """Cleanup on shutdown."""
        logger.info("Stopping HA loop", extra={"event": LogEvent.APP_STOPPED})
        self._running = False
        try:
            await self._lease.release_lease()
        except Exception as e:
            logger.warning(
                "Error releasing lease",
                extra={"event": LogEvent.LEASE_LOST, "error": str(e)},
            )
