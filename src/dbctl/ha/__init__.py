"""Cluster coordination: lease election, switchover and the HA loop."""

from dbctl.ha.lease import LeaseCoordinator, LeaseState
from dbctl.ha.loop import HaLoop
from dbctl.ha.switchover import create_switchover

__all__ = ["HaLoop", "LeaseCoordinator", "LeaseState", "create_switchover"]
