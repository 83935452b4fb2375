"""Cluster snapshot models (Cluster, Member, Leader, Switchover, HaConfig).

A snapshot is fetched fresh from the cluster store on every coordination
cycle and discarded afterwards. All models are frozen.
"""

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, Field, computed_field

from dbctl.core.errors import ConfigurationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_index(member_name: str) -> int:
    """Ordinal suffix of a member name ("mysql-2" -> 2).

    Raises:
        ConfigurationError: If the name has no numeric "-N" suffix.
    """
    _, sep, suffix = member_name.rpartition("-")
    if not sep or not suffix.isdigit():
        raise ConfigurationError(
            f"the format of member name is wrong: {member_name}"
        )
    return int(suffix)


class Member(BaseModel):
    """One cluster participant."""

    name: str
    address: str = ""

    model_config = {"frozen": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def index(self) -> int:
        return get_index(self.name)


class Leader(BaseModel):
    """Current lease holder and lease metadata."""

    name: str
    acquire_time: datetime
    renew_time: datetime
    ttl: float
    resource_version: int = 0

    model_config = {"frozen": True}

    @property
    def expire_time(self) -> datetime:
        return self.renew_time + timedelta(seconds=self.ttl)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= self.expire_time

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "acquire_time": self.acquire_time.isoformat(),
            "renew_time": self.renew_time.isoformat(),
            "ttl": self.ttl,
            "resource_version": self.resource_version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Leader":
        return cls(
            name=data["name"],
            acquire_time=datetime.fromisoformat(data["acquire_time"]),
            renew_time=datetime.fromisoformat(data["renew_time"]),
            ttl=float(data["ttl"]),
            resource_version=int(data.get("resource_version", 0)),
        )


class Switchover(BaseModel):
    """Operator request to move leadership away from `leader`."""

    leader: str = ""
    candidate: str = ""
    created_at: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}


class HaConfig(BaseModel):
    """Cluster-scope HA settings."""

    enable: bool = True
    health_check_period: float = 5.0
    ttl: float = 15.0

    model_config = {"frozen": True}


class Cluster(BaseModel):
    """Immutable snapshot of cluster membership and coordination state."""

    name: str
    members: tuple[Member, ...] = ()
    leader: Leader | None = None
    switchover: Switchover | None = None
    # None until an operator stores one; local settings apply meanwhile
    ha_config: HaConfig | None = None

    model_config = {"frozen": True}

    def get_member(self, name: str) -> Member | None:
        for member in self.members:
            if member.name == name:
                return member
        return None

    def has_member(self, name: str) -> bool:
        return self.get_member(name) is not None

    def valid_leader(self, now: datetime | None = None) -> Leader | None:
        """Leader if its lease is still valid, else None."""
        if self.leader is None or self.leader.is_expired(now):
            return None
        return self.leader
