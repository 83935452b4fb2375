"""Tests for error handling classes."""

import pytest

from dbctl.core.errors import (
    ConfigurationError,
    DbctlError,
    EngineTypeNotSetError,
    ErrorCode,
    InvalidRequestError,
    LockPartiallyHeldError,
    NoManagerForEngineError,
    NotImplementedOperationError,
    NotSupportedError,
    UnknownOperationError,
)


class TestNotSupportedError:
    """Tests for NotSupportedError."""

    def test_inherits_dbctl_error(self) -> None:
        """NotSupportedError should inherit from DbctlError."""
        exc = NotSupportedError()
        assert isinstance(exc, DbctlError)
        assert isinstance(exc, Exception)

    def test_has_correct_error_code(self) -> None:
        exc = NotSupportedError()
        assert exc.code == ErrorCode.NOT_SUPPORTED

    def test_custom_message(self) -> None:
        """Should accept custom message."""
        exc = NotSupportedError("lock is not supported by redis")
        assert exc.message == "lock is not supported by redis"
        assert str(exc) == "lock is not supported by redis"


class TestNotImplementedOperationError:
    """Tests for NotImplementedOperationError."""

    def test_distinct_from_not_supported(self) -> None:
        """Unimplemented and unsupported are different conditions."""
        exc = NotImplementedOperationError()
        assert exc.code == ErrorCode.NOT_IMPLEMENTED
        assert not isinstance(exc, NotSupportedError)


class TestRegistryErrors:
    """Tests for registry-related errors."""

    def test_engine_type_not_set(self) -> None:
        exc = EngineTypeNotSetError()
        assert exc.code == ErrorCode.ENGINE_TYPE_NOT_SET
        assert exc.message == "engine type not set"

    def test_no_manager_for_engine_keeps_engine_type(self) -> None:
        exc = NoManagerForEngineError("oracle")
        assert exc.engine_type == "oracle"
        assert exc.message == "no db manager for engine oracle"

    def test_unknown_operation(self) -> None:
        exc = UnknownOperationError("frobnicate")
        assert exc.code == ErrorCode.UNKNOWN_OPERATION
        assert "frobnicate" in exc.message


class TestLockPartiallyHeldError:
    """Tests for LockPartiallyHeldError."""

    def test_reports_remaining_count(self) -> None:
        exc = LockPartiallyHeldError(remaining=2)
        assert exc.remaining == 2
        assert exc.message == "lock still partially held (remaining=2)"

    def test_unknown_remaining_count(self) -> None:
        """A timeout before any reply leaves the count unknown."""
        exc = LockPartiallyHeldError(remaining=None)
        assert exc.remaining is None
        assert "remaining=unknown" in exc.message


class TestErrorResponse:
    """Tests for to_response conversion."""

    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (ConfigurationError("bad env"), "CONFIGURATION_ERROR"),
            (InvalidRequestError("missing sql"), "INVALID_REQUEST"),
            (NotSupportedError("nope"), "NOT_SUPPORTED"),
        ],
    )
    def test_to_response(self, exc: DbctlError, code: str) -> None:
        """to_response should carry the code and message."""
        response = exc.to_response()
        assert response.error.code == code
        assert response.error.message == exc.message

    def test_response_serializes(self) -> None:
        response = NotSupportedError("Lock is not supported by redis").to_response()
        assert response.model_dump() == {
            "error": {"code": "NOT_SUPPORTED", "message": "Lock is not supported by redis"}
        }
