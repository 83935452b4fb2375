"""Domain models for dbctl.

StatusRow holds raw engine introspection output; Role is the canonical
replica role; the cluster models describe one coordination snapshot.
"""

from dbctl.core.models.cluster import (
    Cluster,
    HaConfig,
    Leader,
    Member,
    Switchover,
    get_index,
    utc_now,
)
from dbctl.core.models.roles import Role, consensus_role
from dbctl.core.models.status_row import StatusRow

__all__ = [
    "Cluster",
    "HaConfig",
    "Leader",
    "Member",
    "Role",
    "StatusRow",
    "Switchover",
    "consensus_role",
    "get_index",
    "utc_now",
]
