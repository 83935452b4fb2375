"""Error handling module for dbctl.

This module defines error codes, exception classes, and response models.

Error Response Format:
{
    "error": {
        "code": "NOT_SUPPORTED",
        "message": "Lock is not supported by redis"
    }
}

Usage:
    from dbctl.core.errors import NotImplementedOperationError, NotSupportedError

    # Raise with default message
    raise NotSupportedError()

    # Raise with custom message
    raise NotImplementedOperationError("list_users is not implemented for redis")

Transient I/O errors raised by the database drivers (connection refused,
timeouts) are NOT wrapped: they propagate as-is so that the caller's polling
loop can decide on retry (see dbctl.core.retryable).
"""

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Error codes."""

    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    NOT_SUPPORTED = "NOT_SUPPORTED"
    ENGINE_TYPE_NOT_SET = "ENGINE_TYPE_NOT_SET"
    NO_MANAGER_FOR_ENGINE = "NO_MANAGER_FOR_ENGINE"
    MANAGER_NOT_INITIALIZED = "MANAGER_NOT_INITIALIZED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    LOCK_PARTIALLY_HELD = "LOCK_PARTIALLY_HELD"
    LEASE_LOST = "LEASE_LOST"
    SWITCHOVER_REJECTED = "SWITCHOVER_REJECTED"
    UNKNOWN_OPERATION = "UNKNOWN_OPERATION"
    INVALID_REQUEST = "INVALID_REQUEST"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorDetail(BaseModel):
    """Error detail containing code and message."""

    code: str
    message: str


class ErrorResponse(BaseModel):
    """Error response format."""

    error: ErrorDetail


class DbctlError(Exception):
    """Base exception for dbctl.

    All dbctl specific exceptions should inherit from this class.
    This enables callers (transport layer, HA loop) to branch on `code`.

    Attributes:
        code: The error code from ErrorCode enum
        message: Human-readable error message
    """

    def __init__(self, code: ErrorCode, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to ErrorResponse model."""
        return ErrorResponse(
            error=ErrorDetail(code=self.code.value, message=self.message)
        )


class NotImplementedOperationError(DbctlError):
    """The engine manager does not implement this operation."""

    def __init__(self, message: str = "Operation not implemented") -> None:
        super().__init__(ErrorCode.NOT_IMPLEMENTED, message)


class NotSupportedError(DbctlError):
    """The engine genuinely lacks this capability (e.g. write lock)."""

    def __init__(self, message: str = "Operation not supported") -> None:
        super().__init__(ErrorCode.NOT_SUPPORTED, message)


class EngineTypeNotSetError(DbctlError):
    def __init__(self, message: str = "engine type not set") -> None:
        super().__init__(ErrorCode.ENGINE_TYPE_NOT_SET, message)


class NoManagerForEngineError(DbctlError):
    def __init__(self, engine_type: str) -> None:
        self.engine_type = engine_type
        super().__init__(
            ErrorCode.NO_MANAGER_FOR_ENGINE, f"no db manager for engine {engine_type}"
        )


class ManagerNotInitializedError(DbctlError):
    def __init__(self, message: str = "no db manager") -> None:
        super().__init__(ErrorCode.MANAGER_NOT_INITIALIZED, message)


class ConfigurationError(DbctlError):
    """Fatal configuration problem detected while constructing a manager."""

    def __init__(self, message: str = "Invalid configuration") -> None:
        super().__init__(ErrorCode.CONFIGURATION_ERROR, message)


class ProtocolError(DbctlError):
    """The engine answered, but the payload did not decode as expected."""

    def __init__(self, message: str = "Unexpected response from engine") -> None:
        super().__init__(ErrorCode.PROTOCOL_ERROR, message)


class LockPartiallyHeldError(DbctlError):
    """Counting lock did not converge to zero within its bound."""

    def __init__(self, remaining: int | None, message: str | None = None) -> None:
        self.remaining = remaining
        count = "unknown" if remaining is None else remaining
        super().__init__(
            ErrorCode.LOCK_PARTIALLY_HELD,
            message or f"lock still partially held (remaining={count})",
        )


class LeaseLostError(DbctlError):
    """The lease expired or was taken over underneath the holder."""

    def __init__(self, message: str = "lease lost") -> None:
        super().__init__(ErrorCode.LEASE_LOST, message)


class SwitchoverRejectedError(DbctlError):
    def __init__(self, message: str = "switchover rejected") -> None:
        super().__init__(ErrorCode.SWITCHOVER_REJECTED, message)


class UnknownOperationError(DbctlError):
    def __init__(self, name: str) -> None:
        super().__init__(ErrorCode.UNKNOWN_OPERATION, f"unknown operation: {name}")


class InvalidRequestError(DbctlError):
    """An operation request is missing a parameter or has a bad one."""

    def __init__(self, message: str = "Invalid request") -> None:
        super().__init__(ErrorCode.INVALID_REQUEST, message)
