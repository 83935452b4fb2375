"""Retryable error classification.

Classifies errors as retryable (transient) or non-retryable (permanent).
The core never retries internally: the HA loop and the transport layer use
this classification to decide how loudly to log and whether the next poll
may succeed.

Usage:
    from dbctl.core.retryable import classify_error, is_retryable

    if is_retryable(exc):
        # wait for next health-check period
"""

import asyncio

import httpx
import redis.exceptions as redis_errors
from pymongo import errors as mongo_errors
from sqlalchemy import exc as sa_errors

from dbctl.core.errors import (
    ConfigurationError,
    DbctlError,
    EngineTypeNotSetError,
    InvalidRequestError,
    LeaseLostError,
    LockPartiallyHeldError,
    NoManagerForEngineError,
    NotImplementedOperationError,
    NotSupportedError,
    ProtocolError,
    SwitchoverRejectedError,
    UnknownOperationError,
)

# =============================================================================
# Driver error classification
# =============================================================================

HTTPX_RETRYABLE = (
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.ReadTimeout,
    httpx.WriteTimeout,
    httpx.PoolTimeout,
)

REDIS_RETRYABLE = (
    redis_errors.ConnectionError,
    redis_errors.TimeoutError,
    redis_errors.BusyLoadingError,
)

MONGO_RETRYABLE = (
    mongo_errors.AutoReconnect,
    mongo_errors.ServerSelectionTimeoutError,
    mongo_errors.NetworkTimeout,
)

SQLALCHEMY_RETRYABLE = (
    sa_errors.OperationalError,
    sa_errors.InterfaceError,
    sa_errors.TimeoutError,
)

DBCTL_PERMANENT = (
    ConfigurationError,
    EngineTypeNotSetError,
    InvalidRequestError,
    NoManagerForEngineError,
    NotImplementedOperationError,
    NotSupportedError,
    ProtocolError,
    SwitchoverRejectedError,
    UnknownOperationError,
)

DBCTL_RETRYABLE = (
    LeaseLostError,
    LockPartiallyHeldError,
)


def is_httpx_retryable(exc: Exception) -> bool:
    """Check if httpx exception is retryable."""
    if isinstance(exc, HTTPX_RETRYABLE):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


def is_retryable(exc: Exception) -> bool:
    """Check if error is retryable (transient).

    Args:
        exc: Exception to classify

    Returns:
        True if error is transient and the next poll may succeed
    """
    return classify_error(exc) == "retryable"


def classify_error(exc: Exception) -> str:
    """Classify error as 'retryable', 'permanent', or 'unknown'.

    Args:
        exc: Exception to classify

    Returns:
        'retryable': Transient error, next poll may succeed
        'permanent': Permanent error, retrying will not help
        'unknown': Cannot classify
    """
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return "retryable"

    if isinstance(exc, DbctlError):
        if isinstance(exc, DBCTL_RETRYABLE):
            return "retryable"
        if isinstance(exc, DBCTL_PERMANENT):
            return "permanent"
        return "unknown"

    if isinstance(exc, httpx.HTTPError):
        return "retryable" if is_httpx_retryable(exc) else "permanent"

    # AuthenticationError subclasses redis ConnectionError
    if isinstance(exc, redis_errors.AuthenticationError):
        return "permanent"
    if isinstance(exc, REDIS_RETRYABLE):
        return "retryable"

    if isinstance(exc, MONGO_RETRYABLE):
        return "retryable"
    if isinstance(exc, mongo_errors.OperationFailure):
        return "permanent"

    if isinstance(exc, SQLALCHEMY_RETRYABLE):
        return "retryable"
    if isinstance(exc, sa_errors.ProgrammingError):
        return "permanent"

    if isinstance(exc, ConnectionError):
        return "retryable"

    return "unknown"
