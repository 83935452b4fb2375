"""Tests for cluster models and manager state."""

from datetime import timedelta

import pytest

from dbctl.app.config import IdentityConfig
from dbctl.core.errors import ConfigurationError
from dbctl.core.models import Cluster, Leader, Member, Role, consensus_role, get_index, utc_now
from dbctl.core.models.state import ManagerState, Readiness, StartupLatch


class TestGetIndex:
    def test_numeric_suffix(self) -> None:
        assert get_index("test-mysql-2") == 2

    @pytest.mark.parametrize("name", ["fake", "mysql-", "mysql-a"])
    def test_wrong_format(self, name: str) -> None:
        with pytest.raises(ConfigurationError, match="the format of member name is wrong"):
            get_index(name)

    def test_member_index(self) -> None:
        assert Member(name="redis-1").index == 1


class TestLeader:
    def test_not_expired_within_ttl(self) -> None:
        now = utc_now()
        leader = Leader(name="a-0", acquire_time=now, renew_time=now, ttl=15)
        assert leader.is_expired(now + timedelta(seconds=14)) is False

    def test_expired_after_ttl(self) -> None:
        now = utc_now()
        leader = Leader(name="a-0", acquire_time=now, renew_time=now, ttl=15)
        assert leader.is_expired(now + timedelta(seconds=15)) is True

    def test_dict_round_trip(self) -> None:
        now = utc_now()
        leader = Leader(name="a-0", acquire_time=now, renew_time=now, ttl=15, resource_version=3)
        assert Leader.from_dict(leader.to_dict()) == leader


class TestCluster:
    def test_membership(self) -> None:
        cluster = Cluster(name="c", members=(Member(name="a-0"), Member(name="a-1")))
        assert cluster.has_member("a-1")
        assert not cluster.has_member("a-2")

    def test_valid_leader_ignores_expired_lease(self) -> None:
        past = utc_now() - timedelta(seconds=60)
        cluster = Cluster(
            name="c",
            leader=Leader(name="a-0", acquire_time=past, renew_time=past, ttl=15),
        )
        assert cluster.valid_leader() is None


class TestRole:
    def test_writable_roles(self) -> None:
        assert {r for r in Role if r.is_writable} == {Role.PRIMARY, Role.LEADER}

    def test_consensus_role_is_case_insensitive(self) -> None:
        assert consensus_role("Leader") is Role.LEADER
        assert consensus_role("FOLLOWER") is Role.FOLLOWER

    def test_consensus_role_unmapped(self) -> None:
        assert consensus_role("observer") is None


class TestStartupLatch:
    def test_starts_not_ready(self) -> None:
        latch = StartupLatch()
        assert latch.state is Readiness.NOT_READY
        assert latch.is_set is False

    def test_set_reports_first_transition_only(self) -> None:
        latch = StartupLatch()
        assert latch.set() is True
        assert latch.set() is False
        assert latch.is_set is True


class TestManagerState:
    def test_from_identity(self) -> None:
        identity = IdentityConfig(pod_name="pg-1", namespace="ns", cluster_comp_name="c-pg")
        state = ManagerState.from_identity(identity, data_dir="/data")

        assert state.member_name == "pg-1"
        assert state.namespace == "ns"
        assert state.cluster_comp_name == "c-pg"
        assert state.data_dir == "/data"
        assert state.locked is False

    def test_requires_pod_name(self) -> None:
        with pytest.raises(ConfigurationError):
            ManagerState.from_identity(IdentityConfig(pod_name=""))
