"""Replica operations: role query and write protection."""

from typing import Any

from dbctl.operations.base import (
    RESP_EVENT_SUCCESS,
    RESP_FIELD_EVENT,
    RESP_FIELD_MESSAGE,
    Operation,
    OperationKind,
    OpsRequest,
    register_operation,
)


@register_operation
class GetRole(Operation):
    NAME = "getrole"
    KIND = OperationKind.GET_ROLE

    async def do(self, request: OpsRequest) -> dict[str, Any]:
        role = await self.manager.get_replica_role()
        return {"role": role.value}


@register_operation
class LockInstance(Operation):
    NAME = "lockinstance"
    KIND = OperationKind.LOCK

    async def do(self, request: OpsRequest) -> dict[str, Any]:
        reason = request.get_string("reason", default="")
        await self.manager.lock(reason)
        return {
            RESP_FIELD_EVENT: RESP_EVENT_SUCCESS,
            RESP_FIELD_MESSAGE: "instance is locked",
        }


@register_operation
class UnlockInstance(Operation):
    NAME = "unlockinstance"
    KIND = OperationKind.UNLOCK

    async def do(self, request: OpsRequest) -> dict[str, Any]:
        await self.manager.unlock()
        return {
            RESP_FIELD_EVENT: RESP_EVENT_SUCCESS,
            RESP_FIELD_MESSAGE: "instance is unlocked",
        }
