"""Cluster store interface (lease, membership, switchover)."""

from abc import ABC, abstractmethod

from dbctl.core.models import Cluster, HaConfig, Leader, Member, Switchover


class ClusterStore(ABC):
    """Abstract backing store for cluster coordination.

    The store owns the compare-and-swap semantics that make concurrent lease
    acquisition race-safe. Implementations must guarantee:
    - create_lease succeeds for at most one caller while a lease is unexpired
    - renew_lease / delete_lease only act if the caller is still the holder
      and the resource version matches
    """

    @property
    @abstractmethod
    def cluster_name(self) -> str:
        ...

    @abstractmethod
    async def get_cluster(self) -> Cluster:
        """Fetch a fresh, immutable cluster snapshot."""
        ...

    @abstractmethod
    async def get_members(self) -> list[Member]:
        ...

    @abstractmethod
    async def add_member(self, member: Member) -> None:
        """Register a member (idempotent)."""
        ...

    @abstractmethod
    async def get_ha_config(self) -> HaConfig | None:
        """Stored HA settings, or None if none were ever stored."""
        ...

    @abstractmethod
    async def update_ha_config(self, ha_config: HaConfig) -> None:
        ...

    # -------------------------------------------------------------------------
    # Switchover
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_switchover(self) -> Switchover | None:
        ...

    @abstractmethod
    async def create_switchover(self, switchover: Switchover) -> None:
        ...

    @abstractmethod
    async def delete_switchover(self) -> None:
        ...

    # -------------------------------------------------------------------------
    # Lease (compare-and-swap primitives)
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_lease(self) -> Leader | None:
        """Return the stored lease record (possibly expired), or None."""
        ...

    @abstractmethod
    async def create_lease(self, holder: str, ttl: float) -> Leader | None:
        """Create a lease for `holder` if no unexpired lease exists.

        Returns:
            The new lease record, or None if another unexpired lease exists.
        """
        ...

    @abstractmethod
    async def renew_lease(self, holder: str, resource_version: int, ttl: float) -> Leader | None:
        """Refresh the lease if `holder` still owns version `resource_version`.

        Returns:
            The renewed record, or None if the lease expired or changed owner.
        """
        ...

    @abstractmethod
    async def delete_lease(self, holder: str) -> bool:
        """Delete the lease if `holder` owns it. Returns True if deleted."""
        ...
