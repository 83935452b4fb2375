"""Engine registry.

The sidecar manages exactly one database engine per process. The registry
maps the closed set of engine types to manager constructors and builds the
manager once; later calls return the cached instance.
"""

import logging
from collections.abc import Callable, Mapping
from enum import StrEnum

from dbctl.app.config import Settings, get_settings
from dbctl.core.errors import (
    EngineTypeNotSetError,
    ManagerNotInitializedError,
    NoManagerForEngineError,
)
from dbctl.core.interfaces import DBManager
from dbctl.core.logging_schema import LogEvent
from dbctl.engines.mongodb import MongoDBManager
from dbctl.engines.mysql import MySQLManager, WeSQLManager
from dbctl.engines.postgres import new_consensus_manager, new_vanilla_manager
from dbctl.engines.redis import RedisManager

logger = logging.getLogger(__name__)


class EngineType(StrEnum):
    """Engines with a manager implementation."""

    MYSQL = "mysql"
    WESQL = "wesql"
    POSTGRESQL = "postgresql"
    VANILLA_POSTGRESQL = "vanilla-postgresql"
    APECLOUD_POSTGRESQL = "apecloud-postgresql"
    MONGODB = "mongodb"
    REDIS = "redis"


ManagerConstructor = Callable[[Settings], DBManager]

ENGINE_CONSTRUCTORS: dict[EngineType, ManagerConstructor] = {
    EngineType.MYSQL: MySQLManager,
    EngineType.WESQL: WeSQLManager,
    EngineType.POSTGRESQL: new_vanilla_manager,
    EngineType.VANILLA_POSTGRESQL: new_vanilla_manager,
    EngineType.APECLOUD_POSTGRESQL: new_consensus_manager,
    EngineType.MONGODB: MongoDBManager,
    EngineType.REDIS: RedisManager,
}


def parse_engine_type(engine_type: str | None) -> EngineType:
    """Case-insensitive lookup of an engine type name.

    Raises:
        EngineTypeNotSetError: If `engine_type` is empty.
        NoManagerForEngineError: If no engine has that name.
    """
    if not engine_type:
        raise EngineTypeNotSetError()
    try:
        return EngineType(engine_type.strip().lower())
    except ValueError:
        raise NoManagerForEngineError(engine_type) from None


class ManagerRegistry:
    """Owns the process-wide DBManager.

    Construction is synchronous, so within one event loop two callers can
    never both observe "not built yet" and construct twice.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        constructors: Mapping[EngineType, ManagerConstructor] | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._constructors: dict[EngineType, ManagerConstructor] = dict(
            ENGINE_CONSTRUCTORS if constructors is None else constructors
        )
        self._manager: DBManager | None = None
        self._engine_type: EngineType | None = None

    @property
    def engine_type(self) -> EngineType | None:
        return self._engine_type

    def init_manager(self, engine_type: str | None = None) -> DBManager:
        """Build the manager for `engine_type` (default: settings) once.

        A constructor failure propagates and leaves the registry empty, so a
        later call may retry.
        """
        if self._manager is not None:
            return self._manager

        if engine_type is None:
            engine_type = self._settings.engine.engine_type
        parsed = parse_engine_type(engine_type)
        constructor = self._constructors.get(parsed)
        if constructor is None:
            raise NoManagerForEngineError(engine_type)

        logger.info(
            "Initialize DB manager",
            extra={"event": LogEvent.MANAGER_INITIALIZED, "engine": parsed.value},
        )
        manager = constructor(self._settings)

        self._manager = manager
        self._engine_type = parsed
        return manager

    def get_manager(self) -> DBManager:
        if self._manager is None:
            raise ManagerNotInitializedError()
        return self._manager

    async def close(self) -> None:
        """Shut down the manager, if any, and forget it."""
        manager, self._manager = self._manager, None
        self._engine_type = None
        if manager is not None:
            await manager.shutdown()
