"""Canonical replica roles.

Every engine maps its native terminology onto this set. `UNKNOWN` is only
returned when detection legitimately cannot tell the role from the data
available; query failures are raised, never mapped to UNKNOWN.
"""

from enum import StrEnum


class Role(StrEnum):
    """Engine-independent replica role."""

    # Replication-set naming
    PRIMARY = "primary"
    SECONDARY = "secondary"

    # Consensus-set naming
    LEADER = "leader"
    FOLLOWER = "follower"
    CANDIDATE = "candidate"
    LEARNER = "learner"

    UNKNOWN = "unknown"

    @property
    def is_writable(self) -> bool:
        """True for roles that accept writes (Primary / Leader)."""
        return self in (Role.PRIMARY, Role.LEADER)


_CONSENSUS_ROLES = {
    "leader": Role.LEADER,
    "follower": Role.FOLLOWER,
    "candidate": Role.CANDIDATE,
    "learner": Role.LEARNER,
}


def consensus_role(value: str) -> Role | None:
    """Map a consensus role string (any case) to a Role, or None if unmapped."""
    return _CONSENSUS_ROLES.get(value.strip().lower())
