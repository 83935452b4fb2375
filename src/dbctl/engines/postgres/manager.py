"""PostgreSQL managers.

One manager class serves every PostgreSQL variant; what differs between them
(role detection, startup readiness) is injected as strategy objects by the
variant constructors at the bottom of this module.
"""

import logging
from collections.abc import Iterable

from dbctl.app.config import Settings
from dbctl.core.interfaces import ReadinessCheck, RoleDetector
from dbctl.core.logging_schema import LogEvent
from dbctl.core.models.state import ManagerState
from dbctl.engines.base import ManagerBase
from dbctl.engines.postgres.query import quote_ident, quote_literal
from dbctl.engines.postgres.strategies import (
    ConsensusExtensionReadiness,
    ConsensusRoleDetector,
    DefaultTransactionReadOnlyLock,
    PatroniRoleDetector,
    RecoveryFlagRoleDetector,
)
from dbctl.infra.sql import SQLClient

logger = logging.getLogger(__name__)


class PostgresManager(ManagerBase):
    ENGINE = "postgresql"

    def __init__(
        self,
        settings: Settings,
        client: SQLClient,
        *,
        role_detector: RoleDetector,
        readiness_checks: Iterable[ReadinessCheck] = (),
        state: ManagerState | None = None,
        engine: str | None = None,
    ) -> None:
        super().__init__(
            settings,
            state,
            role_detector=role_detector,
            readiness_checks=readiness_checks,
            write_lock=DefaultTransactionReadOnlyLock(client),
        )
        self._client = client
        if engine:
            self.engine_name = engine

    @property
    def client(self) -> SQLClient:
        return self._client

    async def ping(self) -> None:
        await self._client.ping()

    async def exec(self, statement: str) -> int:
        return await self._client.execute(statement)

    async def query(self, statement: str) -> bytes:
        return await self._client.query_json(statement)

    # =========================================================================
    # Accounts
    # =========================================================================

    async def list_users(self) -> list[dict]:
        rows = await self._client.fetch_rows(
            "SELECT usename, usesuper, usecreatedb FROM pg_catalog.pg_user ORDER BY usename"
        )
        return [
            {
                "userName": row.get_string("usename"),
                "superuser": row.get_bool("usesuper"),
                "createDB": row.get_bool("usecreatedb"),
            }
            for row in rows
        ]

    async def create_user(self, user_name: str, password: str) -> None:
        await self._client.execute(
            f"CREATE USER {quote_ident(user_name)} WITH PASSWORD {quote_literal(password)}"
        )

    async def delete_user(self, user_name: str) -> None:
        await self._client.execute(f"DROP USER IF EXISTS {quote_ident(user_name)}")

    async def grant_role(self, user_name: str, role_name: str) -> None:
        await self._client.execute(f"GRANT {quote_ident(role_name)} TO {quote_ident(user_name)}")

    async def revoke_role(self, user_name: str, role_name: str) -> None:
        await self._client.execute(
            f"REVOKE {quote_ident(role_name)} FROM {quote_ident(user_name)}"
        )

    async def shutdown(self) -> None:
        if isinstance(self.role_detector, PatroniRoleDetector):
            await self.role_detector.aclose()
        await self._client.dispose()


def _client_from_settings(settings: Settings) -> SQLClient:
    config = settings.postgres
    return SQLClient.from_url(
        config.url(), pool_size=config.pool_size, max_overflow=config.max_overflow
    )


def new_vanilla_manager(settings: Settings, client: SQLClient | None = None) -> PostgresManager:
    """Stock PostgreSQL, optionally managed by Patroni."""
    client = client or _client_from_settings(settings)
    patroni_port = settings.postgres.patroni_port
    if patroni_port:
        logger.info(
            "Using Patroni for role detection",
            extra={"event": LogEvent.MANAGER_INITIALIZED, "patroni_port": patroni_port},
        )
        role_detector: RoleDetector = PatroniRoleDetector(patroni_port)
    else:
        role_detector = RecoveryFlagRoleDetector(client)
    return PostgresManager(
        settings, client, role_detector=role_detector, engine="vanilla-postgresql"
    )


def new_consensus_manager(settings: Settings, client: SQLClient | None = None) -> PostgresManager:
    """Consensus (multi-paxos) PostgreSQL fork."""
    client = client or _client_from_settings(settings)
    return PostgresManager(
        settings,
        client,
        role_detector=ConsensusRoleDetector(client),
        readiness_checks=[ConsensusExtensionReadiness(client)],
        engine="apecloud-postgresql",
    )
