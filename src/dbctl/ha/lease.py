"""Lease-based leader election over a ClusterStore.

State machine:
    NO_LEASE --acquire ok--> HELD
    NO_LEASE --contended--> HELD_BY_OTHER
    HELD --renew rejected--> NO_LEASE (LeaseLostError)
    HELD --release--> NO_LEASE

The store's compare-and-swap guarantees at most one unexpired holder; this
class only tracks the local view and reports transitions.
"""

import asyncio
import logging
from collections.abc import Awaitable
from enum import StrEnum
from typing import TypeVar

from dbctl.app.metrics.collector import LEASE_HELD, LEASE_TRANSITIONS_TOTAL
from dbctl.core.errors import LeaseLostError
from dbctl.core.interfaces import ClusterStore
from dbctl.core.logging_schema import LogEvent
from dbctl.core.models import Leader

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LeaseState(StrEnum):
    NO_LEASE = "no_lease"
    HELD_BY_OTHER = "held_by_other"
    HELD = "held"


class LeaseCoordinator:
    """Acquires, renews and releases the cluster leader lease for one member."""

    DEFAULT_TTL: float = 15.0
    DEFAULT_TIMEOUT: float = 5.0

    def __init__(
        self,
        store: ClusterStore,
        member_name: str,
        ttl: float | None = None,
        timeout: float | None = None,
    ) -> None:
        self._store = store
        self._member_name = member_name
        self.ttl = ttl if ttl is not None else self.DEFAULT_TTL
        self._timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        self._state = LeaseState.NO_LEASE
        self._lease: Leader | None = None
        self._lock = asyncio.Lock()

    @property
    def member_name(self) -> str:
        return self._member_name

    @property
    def state(self) -> LeaseState:
        return self._state

    @property
    def lease(self) -> Leader | None:
        return self._lease

    async def _call(self, awaitable: Awaitable[T]) -> T:
        async with asyncio.timeout(self._timeout):
            return await awaitable

    def _set_held(self, lease: Leader) -> None:
        self._lease = lease
        self._state = LeaseState.HELD
        LEASE_HELD.set(1)

    def _set_not_held(self, state: LeaseState = LeaseState.NO_LEASE) -> None:
        self._lease = None
        self._state = state
        LEASE_HELD.set(0)

    def has_lease(self) -> bool:
        """True while we hold a lease that has not expired locally."""
        return (
            self._state is LeaseState.HELD
            and self._lease is not None
            and not self._lease.is_expired()
        )

    async def get_leader(self) -> Leader | None:
        """Current unexpired lease record, whoever holds it."""
        lease = await self._call(self._store.get_lease())
        if lease is None or lease.is_expired():
            return None
        return lease

    async def is_lease_exist(self) -> bool:
        return await self.get_leader() is not None

    async def attempt_acquire_lease(self) -> bool:
        """Try to become leader. Contention returns False; store failures raise."""
        async with self._lock:
            if self.has_lease():
                return True

            lease = await self._call(self._store.create_lease(self._member_name, self.ttl))
            if lease is None:
                current = await self._call(self._store.get_lease())
                if current is not None and current.name == self._member_name and not current.is_expired():
                    # Our own lease from before a restart
                    lease = current
                else:
                    self._set_not_held(
                        LeaseState.HELD_BY_OTHER if current is not None else LeaseState.NO_LEASE
                    )
                    LEASE_TRANSITIONS_TOTAL.labels(transition="contended").inc()
                    logger.info(
                        "Lease held by another member",
                        extra={
                            "event": LogEvent.LEASE_CONTENDED,
                            "holder": current.name if current else None,
                        },
                    )
                    return False

            self._set_held(lease)
            LEASE_TRANSITIONS_TOTAL.labels(transition="acquired").inc()
            logger.info(
                "Acquired lease",
                extra={
                    "event": LogEvent.LEASE_ACQUIRED,
                    "ttl": self.ttl,
                    "resource_version": lease.resource_version,
                },
            )
            return True

    async def update_lease(self) -> Leader:
        """Renew the held lease.

        Raises:
            LeaseLostError: If the lease is not held, expired, or changed owner.
        """
        async with self._lock:
            if self._state is not LeaseState.HELD or self._lease is None:
                raise LeaseLostError("lease is not held")

            renewed = await self._call(
                self._store.renew_lease(self._member_name, self._lease.resource_version, self.ttl)
            )
            if renewed is None:
                self._set_not_held()
                LEASE_TRANSITIONS_TOTAL.labels(transition="lost").inc()
                logger.warning("Lost lease", extra={"event": LogEvent.LEASE_LOST})
                raise LeaseLostError()

            self._set_held(renewed)
            LEASE_TRANSITIONS_TOTAL.labels(transition="renewed").inc()
            logger.debug(
                "Renewed lease",
                extra={
                    "event": LogEvent.LEASE_RENEWED,
                    "resource_version": renewed.resource_version,
                },
            )
            return renewed

    async def release_lease(self) -> None:
        """Give up the lease. No-op unless we hold it."""
        async with self._lock:
            if self._state is not LeaseState.HELD:
                return

            deleted = await self._call(self._store.delete_lease(self._member_name))
            self._set_not_held()
            LEASE_TRANSITIONS_TOTAL.labels(transition="released").inc()
            logger.info(
                "Released lease",
                extra={"event": LogEvent.LEASE_RELEASED, "deleted": deleted},
            )
