"""Logging field schema - v1.0

Standard fields (added to all logs):
- schema_version: Log schema version
- service: Service name (dbctl)
- event: Event type (role_detected, lease_acquired, etc.)
- member: Current member (pod) name

High cardinality fields (OK in logs, NOT in metric labels):
- reason: Lock reason supplied by the caller
- statement: Raw statement passed to exec/query
"""

from enum import StrEnum


class LogEvent(StrEnum):
    """Standard log event types.

    Use these event types in the 'event' extra field for consistent
    log filtering and analysis.
    """

    # Manager events
    DB_READY = "db_ready"
    DB_NOT_READY = "db_not_ready"
    DB_ERROR = "db_error"
    ROLE_DETECTED = "role_detected"
    ROLE_DETECTION_FAILED = "role_detection_failed"

    # Write protection
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    LOCK_FAILED = "lock_failed"
    UNLOCK_FAILED = "unlock_failed"

    # Lease events
    LEASE_ACQUIRED = "lease_acquired"
    LEASE_RENEWED = "lease_renewed"
    LEASE_RELEASED = "lease_released"
    LEASE_LOST = "lease_lost"
    LEASE_CONTENDED = "lease_contended"

    # Switchover
    SWITCHOVER_CREATED = "switchover_created"
    SWITCHOVER_REJECTED = "switchover_rejected"
    SWITCHOVER_HONORED = "switchover_honored"

    # Lifecycle events
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"
    MANAGER_INITIALIZED = "manager_initialized"

    # Operations
    OPERATION_COMPLETE = "operation_complete"
    OPERATION_FAILED = "operation_failed"


class ErrorClass(StrEnum):
    """Error classification for structured error logging.

    Use these in the 'error_class' extra field to enable
    filtering by error type and setting up alerts.
    """

    TRANSIENT = "transient"  # Retryable (network timeout, connection refused)
    PERMANENT = "permanent"  # Not retryable (protocol/config error)
    TIMEOUT = "timeout"  # Timeout error
    UNKNOWN = "unknown"
