"""Tests for LeaseCoordinator over the in-memory store."""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from dbctl.core.errors import LeaseLostError
from dbctl.core.interfaces import ClusterStore
from dbctl.core.models import utc_now
from dbctl.ha import LeaseCoordinator, LeaseState
from dbctl.infra.memory_store import InMemoryClusterStore


class Clock:
    """Manually advanced clock for lease expiry."""

    def __init__(self) -> None:
        self.now = utc_now()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def store(clock: Clock) -> InMemoryClusterStore:
    return InMemoryClusterStore("test-mysql", clock=clock)


class TestAttemptAcquireLease:
    """Tests for lease acquisition."""

    @pytest.mark.asyncio
    async def test_acquire_free_lease(self, store: InMemoryClusterStore) -> None:
        lease = LeaseCoordinator(store, "test-mysql-0", ttl=15)

        assert await lease.attempt_acquire_lease() is True
        assert lease.state is LeaseState.HELD
        assert lease.has_lease() is True
        assert (await lease.get_leader()).name == "test-mysql-0"

    @pytest.mark.asyncio
    async def test_contended_lease(self, store: InMemoryClusterStore) -> None:
        first = LeaseCoordinator(store, "test-mysql-0", ttl=15)
        second = LeaseCoordinator(store, "test-mysql-1", ttl=15)

        await first.attempt_acquire_lease()

        assert await second.attempt_acquire_lease() is False
        assert second.state is LeaseState.HELD_BY_OTHER
        assert second.has_lease() is False

    @pytest.mark.asyncio
    async def test_concurrent_acquire_has_one_winner(self, store: InMemoryClusterStore) -> None:
        coordinators = [LeaseCoordinator(store, f"test-mysql-{i}", ttl=15) for i in range(5)]

        results = await asyncio.gather(*(c.attempt_acquire_lease() for c in coordinators))

        assert results.count(True) == 1
        winner = coordinators[results.index(True)]
        assert (await store.get_lease()).name == winner.member_name

    @pytest.mark.asyncio
    async def test_expired_lease_can_be_taken(
        self, store: InMemoryClusterStore, clock: Clock
    ) -> None:
        first = LeaseCoordinator(store, "test-mysql-0", ttl=15)
        second = LeaseCoordinator(store, "test-mysql-1", ttl=15)
        await first.attempt_acquire_lease()

        clock.advance(16)

        assert await second.attempt_acquire_lease() is True
        assert (await store.get_lease()).name == "test-mysql-1"

    @pytest.mark.asyncio
    async def test_adopts_own_lease_after_restart(self, store: InMemoryClusterStore) -> None:
        await LeaseCoordinator(store, "test-mysql-0", ttl=15).attempt_acquire_lease()

        restarted = LeaseCoordinator(store, "test-mysql-0", ttl=15)

        assert await restarted.attempt_acquire_lease() is True
        assert restarted.state is LeaseState.HELD

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self) -> None:
        store = AsyncMock(spec=ClusterStore)
        store.create_lease.side_effect = ConnectionError("store down")
        lease = LeaseCoordinator(store, "test-mysql-0")

        with pytest.raises(ConnectionError):
            await lease.attempt_acquire_lease()
        assert lease.state is LeaseState.NO_LEASE

    @pytest.mark.asyncio
    async def test_store_call_is_bounded(self) -> None:
        store = AsyncMock(spec=ClusterStore)

        async def hang(*args):
            await asyncio.sleep(10)

        store.create_lease.side_effect = hang
        lease = LeaseCoordinator(store, "test-mysql-0", timeout=0.05)

        with pytest.raises(TimeoutError):
            await lease.attempt_acquire_lease()


class TestUpdateLease:
    """Tests for lease renewal."""

    @pytest.mark.asyncio
    async def test_renew_bumps_version(self, store: InMemoryClusterStore, clock: Clock) -> None:
        lease = LeaseCoordinator(store, "test-mysql-0", ttl=15)
        await lease.attempt_acquire_lease()
        acquired = lease.lease

        clock.advance(5)
        renewed = await lease.update_lease()

        assert renewed.resource_version > acquired.resource_version
        assert renewed.renew_time == clock.now
        assert renewed.acquire_time == acquired.acquire_time

    @pytest.mark.asyncio
    async def test_renew_without_lease(self, store: InMemoryClusterStore) -> None:
        with pytest.raises(LeaseLostError):
            await LeaseCoordinator(store, "test-mysql-0").update_lease()

    @pytest.mark.asyncio
    async def test_taken_over_lease_is_lost(
        self, store: InMemoryClusterStore, clock: Clock
    ) -> None:
        first = LeaseCoordinator(store, "test-mysql-0", ttl=15)
        second = LeaseCoordinator(store, "test-mysql-1", ttl=15)
        await first.attempt_acquire_lease()
        clock.advance(16)
        await second.attempt_acquire_lease()

        with pytest.raises(LeaseLostError):
            await first.update_lease()
        assert first.state is LeaseState.NO_LEASE
        assert (await store.get_lease()).name == "test-mysql-1"


class TestReleaseLease:
    """Tests for lease release."""

    @pytest.mark.asyncio
    async def test_release_frees_lease(self, store: InMemoryClusterStore) -> None:
        lease = LeaseCoordinator(store, "test-mysql-0")
        await lease.attempt_acquire_lease()

        await lease.release_lease()

        assert lease.state is LeaseState.NO_LEASE
        assert await lease.is_lease_exist() is False

    @pytest.mark.asyncio
    async def test_release_when_not_held_is_noop(self, store: InMemoryClusterStore) -> None:
        holder = LeaseCoordinator(store, "test-mysql-0")
        other = LeaseCoordinator(store, "test-mysql-1")
        await holder.attempt_acquire_lease()

        await other.release_lease()

        assert (await store.get_lease()).name == "test-mysql-0"

    @pytest.mark.asyncio
    async def test_get_leader_ignores_expired(
        self, store: InMemoryClusterStore, clock: Clock
    ) -> None:
        clock.advance(-60)
        lease = LeaseCoordinator(store, "test-mysql-0", ttl=15)
        await lease.attempt_acquire_lease()

        assert await store.get_lease() is not None
        assert await lease.get_leader() is None
        assert await lease.is_lease_exist() is False
