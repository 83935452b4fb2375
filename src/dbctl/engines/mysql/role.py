"""Replication-log role detection for the MySQL family.

Decision order:
1. replica IO or SQL thread running ("Yes")  -> secondary
2. at least one replica attached to us       -> primary
3. @@global.read_only set                    -> secondary
4. otherwise                                 -> primary

MySQL 8.0.22 renamed the replication statements and columns. The version is
probed once and cached on the manager state.
"""

import logging
import re
from dataclasses import dataclass

from dbctl.core.interfaces import RoleDetector
from dbctl.core.models import Role, StatusRow
from dbctl.core.models.state import ManagerState
from dbctl.infra.sql import SQLClient

logger = logging.getLogger(__name__)

VERSION_CACHE_KEY = "mysql_version"
REPLICA_STATUS_CACHE_KEY = "mysql_replica_status"

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)")


@dataclass(frozen=True)
class ReplicationTerms:
    replica_status: str
    replica_hosts: str
    io_running: str
    sql_running: str


LEGACY_TERMS = ReplicationTerms(
    replica_status="show slave status",
    replica_hosts="show slave hosts",
    io_running="Slave_IO_Running",
    sql_running="Slave_SQL_Running",
)

MODERN_TERMS = ReplicationTerms(
    replica_status="SHOW REPLICA STATUS",
    replica_hosts="SHOW REPLICAS",
    io_running="Replica_IO_Running",
    sql_running="Replica_SQL_Running",
)


def uses_modern_replica_terminology(version: str) -> bool:
    """True for MySQL >= 8.0.22. MariaDB and unparseable versions use legacy terms."""
    if "mariadb" in version.lower():
        return False
    match = _VERSION_RE.match(version.strip())
    if match is None:
        return False
    return tuple(int(part) for part in match.groups()) >= (8, 0, 22)


def replication_terms(version: str) -> ReplicationTerms:
    return MODERN_TERMS if uses_modern_replica_terminology(version) else LEGACY_TERMS


class ReplicationLogRoleDetector(RoleDetector):
    """Role from replica status, attached replicas and the read_only flag."""

    def __init__(self, client: SQLClient, state: ManagerState) -> None:
        self._client = client
        self._state = state

    async def get_version(self) -> str:
        cached = self._state.cache.get(VERSION_CACHE_KEY)
        if cached:
            return cached
        row = await self._client.fetch_row("select version()")
        version = ""
        if row:
            version = next(iter(row.values())) or ""
        self._state.cache[VERSION_CACHE_KEY] = version
        return version

    async def get_replica_status(self) -> StatusRow:
        terms = replication_terms(await self.get_version())
        row = await self._client.fetch_row(terms.replica_status)
        status = row if row is not None else StatusRow()
        self._state.cache[REPLICA_STATUS_CACHE_KEY] = status
        return status

    async def has_replica_hosts(self) -> bool:
        terms = replication_terms(await self.get_version())
        return len(await self._client.fetch_rows(terms.replica_hosts)) > 0

    async def is_read_only(self) -> bool:
        row = await self._client.fetch_row("select @@global.read_only")
        if row is None:
            return False
        return row.get_bool("@@global.read_only")

    async def is_replica_running(self) -> bool:
        status = await self.get_replica_status()
        if len(status) == 0:
            return False
        terms = replication_terms(await self.get_version())
        return status.get_string(terms.io_running) == "Yes" or (
            status.get_string(terms.sql_running) == "Yes"
        )

    async def detect(self) -> Role:
        if await self.is_replica_running():
            return Role.SECONDARY
        if await self.has_replica_hosts():
            return Role.PRIMARY
        # A write lock (e.g. disk full) also sets read_only
        if await self.is_read_only():
            return Role.SECONDARY
        return Role.PRIMARY
