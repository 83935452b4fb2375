"""Operation framework.

An operation is the unit the (external) transport invokes: it resolves the
process manager from the registry, runs, and answers with the
`{data, error}` envelope. DbctlError codes are carried into the envelope;
anything else becomes INTERNAL_ERROR.
"""

import logging
from abc import ABC, abstractmethod
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, Field

from dbctl.core.errors import (
    DbctlError,
    ErrorCode,
    ErrorDetail,
    InvalidRequestError,
    UnknownOperationError,
)
from dbctl.core.interfaces import DBManager
from dbctl.core.logging_schema import LogEvent
from dbctl.engines.register import ManagerRegistry

logger = logging.getLogger(__name__)


class OperationKind(StrEnum):
    GET_ROLE = "getRole"
    LOCK = "lockInstance"
    UNLOCK = "unlockInstance"
    EXEC = "exec"
    QUERY = "query"


RESP_FIELD_EVENT = "event"
RESP_FIELD_MESSAGE = "message"
RESP_EVENT_SUCCESS = "Success"
RESP_EVENT_FAILED = "Failed"


class OpsRequest(BaseModel):
    parameters: dict[str, Any] = Field(default_factory=dict)

    def get_string(self, key: str, default: str | None = None) -> str:
        """String parameter `key`.

        Raises:
            InvalidRequestError: If the parameter is missing and has no default.
        """
        value = self.parameters.get(key, default)
        if value is None:
            raise InvalidRequestError(f"missing parameter: {key}")
        return str(value)


class OpsResponse(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)
    error: ErrorDetail | None = None


class Operation(ABC):
    NAME: ClassVar[str]
    KIND: ClassVar[OperationKind]

    def __init__(self, registry: ManagerRegistry) -> None:
        self._registry = registry

    @property
    def manager(self) -> DBManager:
        return self._registry.get_manager()

    @abstractmethod
    async def do(self, request: OpsRequest) -> dict[str, Any]:
        """Run the operation; return fields merged into the response data."""
        ...

    async def execute(self, request: OpsRequest | None = None) -> OpsResponse:
        request = request or OpsRequest()
        response = OpsResponse(data={"operation": self.KIND.value})
        try:
            response.data.update(await self.do(request))
        except DbctlError as e:
            response.error = e.to_response().error
        except Exception as e:
            logger.exception("Operation %s crashed", self.NAME)
            response.error = ErrorDetail(code=ErrorCode.INTERNAL_ERROR.value, message=str(e))

        if response.error is None:
            logger.info(
                "Operation complete",
                extra={"event": LogEvent.OPERATION_COMPLETE, "operation": self.NAME},
            )
        else:
            logger.warning(
                "Operation failed",
                extra={
                    "event": LogEvent.OPERATION_FAILED,
                    "operation": self.NAME,
                    "error_code": response.error.code,
                    "error": response.error.message,
                },
            )
        return response


OPERATIONS: dict[str, type[Operation]] = {}


def register_operation(cls: type[Operation]) -> type[Operation]:
    """Class decorator adding an operation under its lower-cased NAME."""
    OPERATIONS[cls.NAME.lower()] = cls
    return cls


def get_operation(name: str, registry: ManagerRegistry) -> Operation:
    """Instantiate the operation called `name` (case-insensitive).

    Raises:
        UnknownOperationError: If no operation has that name.
    """
    cls = OPERATIONS.get(name.lower())
    if cls is None:
        raise UnknownOperationError(name)
    return cls(registry)
