"""Prometheus metrics definitions for the sidecar.

Single process: no multiprocess mode needed.
"""

from prometheus_client import Counter, Gauge, Histogram

# FAST: DB queries, Redis operations (0.5ms ~ 5s)
_BUCKETS_FAST = (
    0.0005, 0.001, 0.002, 0.005, 0.01,
    0.02, 0.05, 0.1, 0.2, 0.5,
    1, 2, 5,
)

# =============================================================================
# Manager Metrics
# =============================================================================

DB_STARTUP_READY = Gauge(
    "dbctl_db_startup_ready",
    "Whether the database has been observed startup-ready (latched)",
)

DB_LOCKED = Gauge(
    "dbctl_db_locked",
    "Whether writes on the instance are blocked (1) or not (0)",
)

REPLICA_ROLE = Gauge(
    "dbctl_replica_role",
    "Last detected replica role (1 for the current role label)",
    ["role"],
)

ROLE_DETECTION_DURATION = Histogram(
    "dbctl_role_detection_duration_seconds",
    "Duration of get_replica_role calls",
    ["engine"],
    buckets=_BUCKETS_FAST,
)

ROLE_DETECTION_ERRORS = Counter(
    "dbctl_role_detection_errors_total",
    "Failed role detections",
    ["engine", "error_class"],
)

# =============================================================================
# Lease Metrics
# =============================================================================

LEASE_HELD = Gauge(
    "dbctl_lease_held",
    "Whether this member holds the cluster leader lease (1) or not (0)",
)

LEASE_TRANSITIONS_TOTAL = Counter(
    "dbctl_lease_transitions_total",
    "Lease state transitions",
    ["transition"],  # acquired, renewed, released, lost, contended
)

HA_TICK_DURATION = Histogram(
    "dbctl_ha_tick_duration_seconds",
    "Duration of one HA loop cycle",
    buckets=_BUCKETS_FAST,
)
