"""PostgreSQL engines (vanilla, Patroni-managed, consensus)."""

from dbctl.engines.postgres.manager import (
    PostgresManager,
    new_consensus_manager,
    new_vanilla_manager,
)
from dbctl.engines.postgres.query import parse_query

__all__ = [
    "PostgresManager",
    "new_consensus_manager",
    "new_vanilla_manager",
    "parse_query",
]
