"""Operator-initiated switchover requests."""

import logging

from dbctl.core.errors import SwitchoverRejectedError
from dbctl.core.interfaces import ClusterStore
from dbctl.core.logging_schema import LogEvent
from dbctl.core.models import Switchover

logger = logging.getLogger(__name__)


async def create_switchover(store: ClusterStore, candidate: str, leader: str = "") -> Switchover:
    """Record a request to move leadership from `leader` to `candidate`.

    An empty `leader` means the member currently holding the lease.

    Nothing is written unless the request is valid.

    Raises:
        SwitchoverRejectedError: If a named member is not in the cluster,
            no leader can be determined, or another switchover is pending.
    """
    cluster = await store.get_cluster()

    def reject(reason: str) -> SwitchoverRejectedError:
        logger.warning(
            "Switchover rejected",
            extra={
                "event": LogEvent.SWITCHOVER_REJECTED,
                "candidate": candidate,
                "leader": leader,
                "reason": reason,
            },
        )
        return SwitchoverRejectedError(reason)

    if not candidate and not leader:
        raise reject("either candidate or leader must be given")
    if candidate and not cluster.has_member(candidate):
        raise reject(f"candidate {candidate} is not a member of cluster {cluster.name}")
    if not leader:
        # Candidate-only requests move leadership away from the current holder
        current = cluster.valid_leader()
        if current is None:
            raise reject("no leader holds the lease")
        leader = current.name
    if not cluster.has_member(leader):
        raise reject(f"leader {leader} is not a member of cluster {cluster.name}")
    if candidate == leader:
        raise reject(f"candidate {candidate} is already the leader")
    if cluster.switchover is not None:
        raise reject("a switchover is already pending")

    switchover = Switchover(leader=leader, candidate=candidate)
    await store.create_switchover(switchover)
    logger.info(
        "Switchover created",
        extra={"event": LogEvent.SWITCHOVER_CREATED, "candidate": candidate, "leader": leader},
    )
    return switchover
