"""Role, readiness and write-lock strategies for PostgreSQL variants.

- Vanilla:   RecoveryFlagRoleDetector, or PatroniRoleDetector when Patroni
             manages the instance
- Consensus: ConsensusRoleDetector plus ConsensusExtensionReadiness
- Both:      DefaultTransactionReadOnlyLock
"""

import logging

import httpx

from dbctl.core.errors import ProtocolError
from dbctl.core.interfaces import ReadinessCheck, RoleDetector, WriteLock
from dbctl.core.models import Role, consensus_role
from dbctl.engines.postgres.query import parse_query
from dbctl.infra.sql import SQLClient

logger = logging.getLogger(__name__)

CONSENSUS_ROLE_SQL = "select role from consensus_member_status;"
CONSENSUS_EXTENSION_SQL = (
    "SELECT extname FROM pg_extension WHERE extname = 'consensus_monitor';"
)
RECOVERY_FLAG_SQL = "select pg_is_in_recovery();"

_PATRONI_ROLES = {
    "master": Role.PRIMARY,
    "standby_leader": Role.PRIMARY,
    "primary": Role.PRIMARY,
    "replica": Role.SECONDARY,
}


class ConsensusRoleDetector(RoleDetector):
    """Role reported by the consensus plugin's member status view."""

    def __init__(self, client: SQLClient) -> None:
        self._client = client

    async def detect(self) -> Role:
        rows = parse_query(await self._client.query_json(CONSENSUS_ROLE_SQL))
        if not rows:
            raise ProtocolError("consensus_member_status returned no rows")

        value = str(rows[0].get("role") or "")
        role = consensus_role(value)
        if role is None:
            raise ProtocolError(f"unknown consensus role: {value!r}")
        return role


class ConsensusExtensionReadiness(ReadinessCheck):
    """Startup is ready only once the consensus_monitor extension exists."""

    def __init__(self, client: SQLClient) -> None:
        self._client = client

    async def check(self) -> bool:
        rows = parse_query(await self._client.query_json(CONSENSUS_EXTENSION_SQL))
        return bool(rows) and rows[0].get("extname") is not None


class RecoveryFlagRoleDetector(RoleDetector):
    """In recovery means standby."""

    def __init__(self, client: SQLClient) -> None:
        self._client = client

    async def detect(self) -> Role:
        rows = parse_query(await self._client.query_json(RECOVERY_FLAG_SQL))
        if not rows or "pg_is_in_recovery" not in rows[0]:
            raise ProtocolError("pg_is_in_recovery returned no rows")
        return Role.SECONDARY if rows[0]["pg_is_in_recovery"] else Role.PRIMARY


class PatroniRoleDetector(RoleDetector):
    """Role from the local Patroni REST API.

    Patroni answers GET / with 503 on replicas, so the status code is ignored
    and only the JSON body is inspected.
    """

    def __init__(self, port: str, http_client: httpx.AsyncClient | None = None) -> None:
        self.url = f"http://127.0.0.1:{port}"
        self._http = http_client or httpx.AsyncClient(timeout=5.0)

    async def detect(self) -> Role:
        response = await self._http.get(self.url)
        try:
            data = response.json()
        except ValueError as e:
            raise ProtocolError(f"patroni returned invalid JSON: {e}") from e

        value = str(data.get("role", "")).lower() if isinstance(data, dict) else ""
        role = _PATRONI_ROLES.get(value)
        if role is None:
            raise ProtocolError(f"unknown role:{value}")
        return role

    async def aclose(self) -> None:
        await self._http.aclose()


class DefaultTransactionReadOnlyLock(WriteLock):
    """Flips default_transaction_read_only and reloads the configuration.

    ALTER SYSTEM cannot run inside a transaction block or share a prepared
    statement with another command, so the two steps are sent separately.
    """

    def __init__(self, client: SQLClient) -> None:
        self._client = client

    async def _set_read_only(self, value: str) -> None:
        await self._client.execute(f"alter system set default_transaction_read_only={value}")
        await self._client.fetch_rows("select pg_reload_conf()")

    async def lock(self, reason: str) -> None:
        await self._set_read_only("on")

    async def unlock(self) -> None:
        await self._set_read_only("off")
