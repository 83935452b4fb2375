"""Operations exposed to the transport layer.

Importing this package registers every operation.
"""

from dbctl.operations import replica, sql  # noqa: F401
from dbctl.operations.base import (
    OPERATIONS,
    Operation,
    OperationKind,
    OpsRequest,
    OpsResponse,
    get_operation,
)

__all__ = [
    "OPERATIONS",
    "Operation",
    "OperationKind",
    "OpsRequest",
    "OpsResponse",
    "get_operation",
]
