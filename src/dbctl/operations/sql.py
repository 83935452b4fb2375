"""Raw statement operations."""

from typing import Any

from dbctl.operations.base import Operation, OperationKind, OpsRequest, register_operation


@register_operation
class Exec(Operation):
    NAME = "exec"
    KIND = OperationKind.EXEC

    async def do(self, request: OpsRequest) -> dict[str, Any]:
        count = await self.manager.exec(request.get_string("sql"))
        return {"count": count}


@register_operation
class Query(Operation):
    NAME = "query"
    KIND = OperationKind.QUERY

    async def do(self, request: OpsRequest) -> dict[str, Any]:
        result = await self.manager.query(request.get_string("sql"))
        return {"result": result.decode()}
