"""In-process cluster store.

Every mutation runs under one asyncio.Lock, which gives the lease
compare-and-swap its atomicity. Suitable for a single process (tests,
local development); replicas in separate processes need RedisClusterStore.
"""

import asyncio
from collections.abc import Callable, Iterable
from datetime import datetime

from dbctl.core.interfaces import ClusterStore
from dbctl.core.models import Cluster, HaConfig, Leader, Member, Switchover, utc_now


class InMemoryClusterStore(ClusterStore):
    def __init__(
        self,
        cluster_name: str,
        members: Iterable[Member] = (),
        ha_config: HaConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._cluster_name = cluster_name
        self._members: dict[str, Member] = {m.name: m for m in members}
        self._ha_config = ha_config
        self._switchover: Switchover | None = None
        self._lease: Leader | None = None
        self._version = 0
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def cluster_name(self) -> str:
        return self._cluster_name

    async def get_cluster(self) -> Cluster:
        async with self._lock:
            return Cluster(
                name=self._cluster_name,
                members=tuple(self._members.values()),
                leader=self._lease,
                switchover=self._switchover,
                ha_config=self._ha_config,
            )

    async def get_members(self) -> list[Member]:
        return list(self._members.values())

    async def add_member(self, member: Member) -> None:
        async with self._lock:
            self._members[member.name] = member

    async def get_ha_config(self) -> HaConfig | None:
        return self._ha_config

    async def update_ha_config(self, ha_config: HaConfig) -> None:
        async with self._lock:
            self._ha_config = ha_config

    async def get_switchover(self) -> Switchover | None:
        return self._switchover

    async def create_switchover(self, switchover: Switchover) -> None:
        async with self._lock:
            self._switchover = switchover

    async def delete_switchover(self) -> None:
        async with self._lock:
            self._switchover = None

    async def get_lease(self) -> Leader | None:
        return self._lease

    async def create_lease(self, holder: str, ttl: float) -> Leader | None:
        async with self._lock:
            now = self._clock()
            if self._lease is not None and not self._lease.is_expired(now):
                return None
            self._version += 1
            self._lease = Leader(
                name=holder,
                acquire_time=now,
                renew_time=now,
                ttl=ttl,
                resource_version=self._version,
            )
            return self._lease

    async def renew_lease(self, holder: str, resource_version: int, ttl: float) -> Leader | None:
        async with self._lock:
            now = self._clock()
            lease = self._lease
            if (
                lease is None
                or lease.name != holder
                or lease.resource_version != resource_version
                or lease.is_expired(now)
            ):
                return None
            self._version += 1
            self._lease = lease.model_copy(
                update={"renew_time": now, "ttl": ttl, "resource_version": self._version}
            )
            return self._lease

    async def delete_lease(self, holder: str) -> bool:
        async with self._lock:
            if self._lease is None or self._lease.name != holder:
                return False
            self._lease = None
            return True
