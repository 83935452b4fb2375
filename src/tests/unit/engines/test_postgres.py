"""Tests for PostgreSQL managers and strategies."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from dbctl.app.config import PostgresConfig, Settings
from dbctl.core.errors import ProtocolError
from dbctl.core.models import Role
from dbctl.engines.postgres import new_consensus_manager, new_vanilla_manager, parse_query
from dbctl.engines.postgres.strategies import (
    CONSENSUS_EXTENSION_SQL,
    CONSENSUS_ROLE_SQL,
    ConsensusRoleDetector,
    PatroniRoleDetector,
    RecoveryFlagRoleDetector,
)


def rows_json(*rows: dict) -> bytes:
    return json.dumps(list(rows)).encode()


def patroni(status_code: int, body: bytes) -> PatroniRoleDetector:
    def handler(request: httpx.Request) -> httpx.Response:
        assert (request.url.host, request.url.port) == ("127.0.0.1", 8008)
        return httpx.Response(status_code, content=body)

    return PatroniRoleDetector(
        "8008", http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )


@pytest.fixture
def pg_settings(settings_factory) -> Settings:
    return settings_factory("test-postgresql-0")


class TestParseQuery:
    """Tests for parse_query."""

    def test_rows(self) -> None:
        assert parse_query(b'[{"role":"Leader"}]') == [{"role": "Leader"}]

    def test_empty_result(self) -> None:
        assert parse_query("[]") == []

    def test_invalid_json(self) -> None:
        with pytest.raises(ProtocolError, match="not valid JSON"):
            parse_query(b"not json")

    @pytest.mark.parametrize("payload", ['{"role": "Leader"}', "[1, 2]", '"text"'])
    def test_not_a_list_of_objects(self, payload: str) -> None:
        with pytest.raises(ProtocolError):
            parse_query(payload)


class TestConsensusRoleDetector:
    """Tests for consensus role detection."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("value", "role"),
        [
            ("Leader", Role.LEADER),
            ("FOLLOWER", Role.FOLLOWER),
            ("candidate", Role.CANDIDATE),
            ("Learner", Role.LEARNER),
        ],
    )
    async def test_maps_roles_case_insensitively(
        self, mock_sql: AsyncMock, value: str, role: Role
    ) -> None:
        mock_sql.query_json.return_value = rows_json({"role": value})

        assert await ConsensusRoleDetector(mock_sql).detect() is role
        mock_sql.query_json.assert_awaited_once_with(CONSENSUS_ROLE_SQL)

    @pytest.mark.asyncio
    async def test_empty_result_is_protocol_error(self, mock_sql: AsyncMock) -> None:
        mock_sql.query_json.return_value = b"[]"
        with pytest.raises(ProtocolError):
            await ConsensusRoleDetector(mock_sql).detect()

    @pytest.mark.asyncio
    async def test_unmapped_role_is_protocol_error(self, mock_sql: AsyncMock) -> None:
        mock_sql.query_json.return_value = rows_json({"role": "Observer"})
        with pytest.raises(ProtocolError, match="Observer"):
            await ConsensusRoleDetector(mock_sql).detect()


class TestRecoveryFlagRoleDetector:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(("in_recovery", "role"), [(True, Role.SECONDARY), (False, Role.PRIMARY)])
    async def test_recovery_flag(self, mock_sql: AsyncMock, in_recovery: bool, role: Role) -> None:
        mock_sql.query_json.return_value = rows_json({"pg_is_in_recovery": in_recovery})
        assert await RecoveryFlagRoleDetector(mock_sql).detect() is role

    @pytest.mark.asyncio
    async def test_no_rows(self, mock_sql: AsyncMock) -> None:
        mock_sql.query_json.return_value = b"[]"
        with pytest.raises(ProtocolError):
            await RecoveryFlagRoleDetector(mock_sql).detect()


class TestPatroniRoleDetector:
    """Tests for Patroni REST role detection."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["master", "primary", "standby_leader"])
    async def test_primary_roles(self, value: str) -> None:
        detector = patroni(200, json.dumps({"role": value}).encode())
        assert await detector.detect() is Role.PRIMARY

    @pytest.mark.asyncio
    async def test_replica_answers_503(self) -> None:
        """The body is parsed even though Patroni answers 503 on replicas."""
        detector = patroni(503, b'{"role": "replica", "state": "running"}')
        assert await detector.detect() is Role.SECONDARY

    @pytest.mark.asyncio
    async def test_unknown_role(self) -> None:
        detector = patroni(200, b'{"role": "uninitialized"}')
        with pytest.raises(ProtocolError, match="unknown role:uninitialized"):
            await detector.detect()

    @pytest.mark.asyncio
    async def test_invalid_body(self) -> None:
        detector = patroni(200, b"<html>")
        with pytest.raises(ProtocolError):
            await detector.detect()

    @pytest.mark.asyncio
    async def test_connection_failure_propagates(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        detector = PatroniRoleDetector(
            "8008", http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        with pytest.raises(httpx.ConnectError):
            await detector.detect()


class TestConsensusManager:
    """Tests for the consensus PostgreSQL manager."""

    @pytest.mark.asyncio
    async def test_startup_waits_for_extension(
        self, pg_settings: Settings, mock_sql: AsyncMock
    ) -> None:
        manager = new_consensus_manager(pg_settings, client=mock_sql)
        mock_sql.query_json.return_value = b"[]"

        assert await manager.is_startup_ready() is False

        mock_sql.query_json.return_value = rows_json({"extname": "consensus_monitor"})
        assert await manager.is_startup_ready() is True
        mock_sql.query_json.assert_awaited_with(CONSENSUS_EXTENSION_SQL)

    @pytest.mark.asyncio
    async def test_engine_name(self, pg_settings: Settings, mock_sql: AsyncMock) -> None:
        manager = new_consensus_manager(pg_settings, client=mock_sql)
        assert manager.engine_name == "apecloud-postgresql"
        assert isinstance(manager.role_detector, ConsensusRoleDetector)


class TestVanillaManager:
    """Tests for the vanilla PostgreSQL manager."""

    def test_recovery_flag_without_patroni(self, pg_settings: Settings, mock_sql: AsyncMock) -> None:
        manager = new_vanilla_manager(pg_settings, client=mock_sql)
        assert manager.engine_name == "vanilla-postgresql"
        assert isinstance(manager.role_detector, RecoveryFlagRoleDetector)

    @pytest.mark.asyncio
    async def test_patroni_when_port_set(self, settings_factory, mock_sql: AsyncMock) -> None:
        settings = settings_factory(
            "test-postgresql-0", postgres=PostgresConfig(patroni_port="8008")
        )
        manager = new_vanilla_manager(settings, client=mock_sql)

        assert isinstance(manager.role_detector, PatroniRoleDetector)
        assert manager.role_detector.url == "http://127.0.0.1:8008"
        await manager.shutdown()

    @pytest.mark.asyncio
    async def test_lock_statements(self, pg_settings: Settings, mock_sql: AsyncMock) -> None:
        manager = new_vanilla_manager(pg_settings, client=mock_sql)

        await manager.lock("disk full")
        mock_sql.execute.assert_awaited_once_with(
            "alter system set default_transaction_read_only=on"
        )
        mock_sql.fetch_rows.assert_awaited_once_with("select pg_reload_conf()")
        assert manager.is_locked is True

        await manager.unlock()
        mock_sql.execute.assert_awaited_with("alter system set default_transaction_read_only=off")
        assert manager.is_locked is False

    @pytest.mark.asyncio
    async def test_create_user_quotes_identifiers(
        self, pg_settings: Settings, mock_sql: AsyncMock
    ) -> None:
        manager = new_vanilla_manager(pg_settings, client=mock_sql)
        await manager.create_user('we"ird', "pa'ss")
        mock_sql.execute.assert_awaited_once_with(
            "CREATE USER \"we\"\"ird\" WITH PASSWORD 'pa''ss'"
        )

    @pytest.mark.asyncio
    async def test_query_returns_json(self, pg_settings: Settings, mock_sql: AsyncMock) -> None:
        mock_sql.query_json.return_value = rows_json({"a": 1})
        manager = new_vanilla_manager(pg_settings, client=mock_sql)

        assert parse_query(await manager.query("select 1 as a")) == [{"a": 1}]
