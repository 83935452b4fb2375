"""SQLAlchemy async client shared by the MySQL and PostgreSQL managers.

Statements issued by the sidecar are administrative (SET GLOBAL, ALTER
SYSTEM, SHOW ...), so connections run in AUTOCOMMIT mode and raw strings are
passed to the driver untouched via exec_driver_sql.
"""

import json
import logging

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool

from dbctl.core.models import StatusRow

logger = logging.getLogger(__name__)


class SQLClient:
    """Thin wrapper around an AsyncEngine returning StatusRow results."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, url: str, pool_size: int = 1, max_overflow: int = 4) -> "SQLClient":
        engine = create_async_engine(
            url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_recycle=3600,
            pool_pre_ping=True,
            poolclass=AsyncAdaptedQueuePool,
            isolation_level="AUTOCOMMIT",
        )
        return cls(engine)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def ping(self) -> None:
        async with self._engine.connect() as conn:
            await conn.exec_driver_sql("SELECT 1")

    async def fetch_rows(self, statement: str) -> list[StatusRow]:
        async with self._engine.connect() as conn:
            result = await conn.exec_driver_sql(statement)
            if not result.returns_rows:
                return []
            keys = list(result.keys())
            return [StatusRow.from_row(keys, row) for row in result.fetchall()]

    async def fetch_row(self, statement: str) -> StatusRow | None:
        """First row of the result, or None if there is none."""
        rows = await self.fetch_rows(statement)
        return rows[0] if rows else None

    async def execute(self, statement: str) -> int:
        """Execute and return the affected row count (0 if unknown)."""
        async with self._engine.connect() as conn:
            result = await conn.exec_driver_sql(statement)
            return max(result.rowcount, 0)

    async def query_json(self, statement: str) -> bytes:
        """Run a query and encode its rows as a JSON array of objects."""
        async with self._engine.connect() as conn:
            result = await conn.exec_driver_sql(statement)
            if not result.returns_rows:
                return b"[]"
            rows = [dict(row._mapping) for row in result.fetchall()]
        return json.dumps(rows, default=str).encode()

    async def dispose(self) -> None:
        await self._engine.dispose()
