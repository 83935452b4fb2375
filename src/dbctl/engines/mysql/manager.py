"""MySQL family manager (MySQL, WeSQL)."""

import logging

from dbctl.app.config import Settings
from dbctl.core.interfaces import WriteLock
from dbctl.core.logging_schema import LogEvent
from dbctl.core.models import StatusRow, get_index
from dbctl.core.models.state import ManagerState
from dbctl.engines.base import ManagerBase
from dbctl.engines.mysql.role import REPLICA_STATUS_CACHE_KEY, ReplicationLogRoleDetector
from dbctl.infra.sql import SQLClient

logger = logging.getLogger(__name__)

ER_CON_COUNT_ERROR = 1040  # Too many connections


def mysql_error_code(exc: BaseException) -> int | None:
    """Server error number of a driver error, unwrapping SQLAlchemy's DBAPIError."""
    orig = getattr(exc, "orig", None) or exc
    if orig.args and isinstance(orig.args[0], int):
        return orig.args[0]
    return None


def quote_literal(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


class ReadOnlyWriteLock(WriteLock):
    """Blocks writes with the global read_only flag."""

    def __init__(self, client: SQLClient) -> None:
        self._client = client

    async def lock(self, reason: str) -> None:
        await self._client.execute("set global read_only=on")

    async def unlock(self) -> None:
        await self._client.execute("set global read_only=off")


class MySQLManager(ManagerBase):
    ENGINE = "mysql"

    def __init__(
        self,
        settings: Settings,
        state: ManagerState | None = None,
        client: SQLClient | None = None,
    ) -> None:
        super().__init__(settings, state)
        # Fails fast on member names without an ordinal suffix
        self.server_id = get_index(self.state.member_name) + 1

        config = settings.mysql
        self._client = client or SQLClient.from_url(
            config.url(), pool_size=config.pool_size, max_overflow=config.max_overflow
        )
        self._replication = ReplicationLogRoleDetector(self._client, self.state)
        self.role_detector = self._replication
        self.write_lock = ReadOnlyWriteLock(self._client)

    @property
    def client(self) -> SQLClient:
        return self._client

    async def ping(self) -> None:
        await self._client.ping()

    def running_despite(self, exc: Exception) -> bool:
        if mysql_error_code(exc) == ER_CON_COUNT_ERROR:
            logger.info(
                "Connect failed: Too many connections",
                extra={"event": LogEvent.DB_ERROR, "engine": self.engine_name},
            )
            return True
        return False

    async def get_version(self) -> str:
        return await self._replication.get_version()

    @property
    def last_replica_status(self) -> StatusRow | None:
        return self.state.cache.get(REPLICA_STATUS_CACHE_KEY)

    async def exec(self, statement: str) -> int:
        return await self._client.execute(statement)

    async def query(self, statement: str) -> bytes:
        return await self._client.query_json(statement)

    # =========================================================================
    # Accounts
    # =========================================================================

    async def list_users(self) -> list[dict]:
        rows = await self._client.fetch_rows(
            "SELECT user AS userName, host AS host FROM mysql.user"
        )
        return [{"userName": row.get_string("userName"), "host": row.get_string("host")} for row in rows]

    async def create_user(self, user_name: str, password: str) -> None:
        await self._client.execute(
            f"CREATE USER {quote_literal(user_name)}@'%' IDENTIFIED BY {quote_literal(password)}"
        )

    async def delete_user(self, user_name: str) -> None:
        await self._client.execute(f"DROP USER IF EXISTS {quote_literal(user_name)}@'%'")

    async def grant_role(self, user_name: str, role_name: str) -> None:
        await self._client.execute(f"GRANT {quote_literal(role_name)} TO {quote_literal(user_name)}@'%'")

    async def revoke_role(self, user_name: str, role_name: str) -> None:
        await self._client.execute(
            f"REVOKE {quote_literal(role_name)} FROM {quote_literal(user_name)}@'%'"
        )

    async def shutdown(self) -> None:
        await self._client.dispose()


class WeSQLManager(MySQLManager):
    ENGINE = "wesql"
