"""Tests for the MongoDB manager (replica-set role, fsync counting lock)."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from dbctl.app.config import LockConfig, Settings
from dbctl.core.errors import LockPartiallyHeldError, ProtocolError
from dbctl.core.models import Role
from dbctl.engines.mongodb import MongoDBManager
from dbctl.engines.mongodb.manager import FsyncCountingLock, ReplicaSetRoleDetector


class FakeAdmin:
    """admin database double that tracks the server-side fsync lock count."""

    def __init__(self, lock_count: int = 0) -> None:
        self.lock_count = lock_count
        self.commands: list[dict] = []
        self.unlock_decrement = 1
        self.fail_unlock_after: int | None = None

    async def command(self, command):
        self.commands.append(command)
        if command == "ping":
            return {"ok": 1}
        if "fsync" in command:
            self.lock_count += 1
            return {"ok": 1, "lockCount": self.lock_count}
        if "fsyncUnlock" in command:
            unlocks = sum(1 for c in self.commands if isinstance(c, dict) and "fsyncUnlock" in c)
            if self.fail_unlock_after is not None and unlocks > self.fail_unlock_after:
                return {"ok": 0, "errmsg": "not locked"}
            self.lock_count = max(self.lock_count - self.unlock_decrement, 0)
            return {"ok": 1, "lockCount": self.lock_count}
        raise AssertionError(f"unexpected command: {command}")

    def unlock_commands(self) -> int:
        return sum(1 for c in self.commands if isinstance(c, dict) and "fsyncUnlock" in c)


def motor_client(admin) -> MagicMock:
    client = MagicMock()
    client.__getitem__.return_value = admin
    return client


def repl_status(*members: dict) -> dict:
    return {"ok": 1, "set": "rs0", "members": list(members)}


@pytest.fixture
def mongo_settings(settings_factory) -> Settings:
    return settings_factory("test-mongodb-0")


class TestReplicaSetRoleDetector:
    """Tests for replSetGetStatus role detection."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("state_str", "role"),
        [
            ("PRIMARY", Role.PRIMARY),
            ("SECONDARY", Role.SECONDARY),
            ("RECOVERING", Role.UNKNOWN),
            ("ARBITER", Role.UNKNOWN),
        ],
    )
    async def test_self_member_state(self, state_str: str, role: Role) -> None:
        admin = MagicMock()
        admin.command = AsyncMock(
            return_value=repl_status(
                {"name": "test-mongodb-1:27017", "stateStr": "PRIMARY"},
                {"name": "test-mongodb-0:27017", "stateStr": state_str, "self": True},
            )
        )
        assert await ReplicaSetRoleDetector(admin).detect() is role
        admin.command.assert_awaited_once_with({"replSetGetStatus": 1})

    @pytest.mark.asyncio
    async def test_no_self_member(self) -> None:
        admin = MagicMock()
        admin.command = AsyncMock(return_value=repl_status({"name": "x", "stateStr": "PRIMARY"}))
        assert await ReplicaSetRoleDetector(admin).detect() is Role.UNKNOWN

    @pytest.mark.asyncio
    async def test_not_ok_is_protocol_error(self) -> None:
        admin = MagicMock()
        admin.command = AsyncMock(return_value={"ok": 0, "errmsg": "no replset config"})
        with pytest.raises(ProtocolError, match="mongo says: no replset config"):
            await ReplicaSetRoleDetector(admin).detect()


class TestFsyncCountingLock:
    """Tests for the counting unlock loop."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [1, 2, 5])
    async def test_unlock_converges_for_any_count(self, count: int) -> None:
        admin = FakeAdmin()
        lock = FsyncCountingLock(admin, unlock_timeout=1.0)
        for _ in range(count):
            await lock.lock("backup")

        await lock.unlock()

        assert admin.lock_count == 0
        assert admin.unlock_commands() == count

    @pytest.mark.asyncio
    async def test_lock_sends_reason_as_comment(self) -> None:
        admin = FakeAdmin()
        await FsyncCountingLock(admin).lock("disk full")
        assert admin.commands == [{"fsync": 1, "lock": True, "comment": "disk full"}]

    @pytest.mark.asyncio
    async def test_stalled_count_hits_attempt_bound(self) -> None:
        admin = FakeAdmin(lock_count=3)
        admin.unlock_decrement = 0
        lock = FsyncCountingLock(admin, unlock_timeout=1.0, max_unlock_attempts=4)

        with pytest.raises(LockPartiallyHeldError) as exc_info:
            await lock.unlock()

        assert exc_info.value.remaining == 3
        assert admin.unlock_commands() == 4

    @pytest.mark.asyncio
    async def test_stalled_count_hits_timeout(self) -> None:
        admin = MagicMock()

        async def slow_unlock(command):
            await asyncio.sleep(0.05)
            return {"ok": 1, "lockCount": 2}

        admin.command = slow_unlock
        lock = FsyncCountingLock(admin, unlock_timeout=0.2)

        with pytest.raises(LockPartiallyHeldError) as exc_info:
            await lock.unlock()
        assert exc_info.value.remaining == 2

    @pytest.mark.asyncio
    async def test_command_failure_aborts_loop(self) -> None:
        admin = FakeAdmin(lock_count=3)
        admin.fail_unlock_after = 1
        lock = FsyncCountingLock(admin, unlock_timeout=1.0)

        with pytest.raises(ProtocolError):
            await lock.unlock()
        assert admin.lock_count == 2


class TestMongoDBManager:
    """Tests for MongoDBManager wiring."""

    @pytest.mark.asyncio
    async def test_lock_unlock_round(self, mongo_settings: Settings) -> None:
        admin = FakeAdmin()
        manager = MongoDBManager(mongo_settings, client=motor_client(admin))

        await manager.lock("disk full")
        assert manager.is_locked is True

        await manager.unlock()
        assert manager.is_locked is False
        assert admin.lock_count == 0

    @pytest.mark.asyncio
    async def test_failed_unlock_keeps_locked(self, mongo_settings: Settings) -> None:
        admin = FakeAdmin()
        manager = MongoDBManager(mongo_settings, client=motor_client(admin))
        await manager.lock("disk full")
        await manager.lock("again")  # idempotent: server count stays at 1
        admin.fail_unlock_after = 0

        with pytest.raises(ProtocolError):
            await manager.unlock()
        assert manager.is_locked is True
        assert admin.lock_count == 1

    def test_unlock_bounds_from_settings(self, settings_factory) -> None:
        settings = settings_factory(
            "test-mongodb-0", lock=LockConfig(unlock_timeout=7.0, max_unlock_attempts=3)
        )
        manager = MongoDBManager(settings, client=motor_client(FakeAdmin()))

        assert manager.write_lock.unlock_timeout == 7.0
        assert manager.write_lock.max_unlock_attempts == 3

    @pytest.mark.asyncio
    async def test_is_running_pings_admin(self, mongo_settings: Settings) -> None:
        admin = FakeAdmin()
        manager = MongoDBManager(mongo_settings, client=motor_client(admin))

        assert await manager.is_running() is True
        assert admin.commands == ["ping"]

    @pytest.mark.asyncio
    async def test_shutdown_closes_client(self, mongo_settings: Settings) -> None:
        client = motor_client(FakeAdmin())
        manager = MongoDBManager(mongo_settings, client=client)

        await manager.shutdown()
        client.close.assert_called_once()
