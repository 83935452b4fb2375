"""Redis manager with Sentinel-based role detection.

Redis has no write lock that survives independently of replication, so
lock/unlock are not supported.
"""

import json
import logging

import redis.asyncio as redis
from redis.asyncio.sentinel import Sentinel

from dbctl.app.config import Settings
from dbctl.core.interfaces import RoleDetector
from dbctl.core.logging_schema import LogEvent
from dbctl.core.models import Role
from dbctl.core.models.state import ManagerState
from dbctl.engines.base import ManagerBase
from dbctl.engines.redis.address import AdvertisedAddress, resolve_advertised_address

logger = logging.getLogger(__name__)


def _parse_host_port(value: str, default_port: int = 26379) -> tuple[str, int]:
    host, sep, port = value.rpartition(":")
    if not sep:
        return value, default_port
    return host, int(port)


def _text(value: str | bytes) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


def redis_major_version(version: str) -> int:
    head = version.strip().split(".", 1)[0]
    return int(head) if head.isdigit() else -1


class SentinelRoleDetector(RoleDetector):
    """Primary if Sentinel's master address is our advertised address."""

    def __init__(self, sentinel: Sentinel, master_name: str, address: AdvertisedAddress) -> None:
        self._sentinel = sentinel
        self.master_name = master_name
        self.address = address

    async def get_master_addr(self) -> tuple[str, str] | None:
        """Ask each sentinel in turn; the first one that answers decides."""
        last_error: Exception | None = None
        for client in self._sentinel.sentinels:
            try:
                master = await client.sentinel_get_master_addr_by_name(self.master_name)
            except (redis.ConnectionError, redis.TimeoutError) as e:
                last_error = e
                continue
            if not master:
                return None
            host, port = master
            return _text(host), _text(port)

        if last_error is not None:
            raise last_error
        return None

    async def detect(self) -> Role:
        master = await self.get_master_addr()
        if master is None:
            logger.info(
                "Sentinel knows no master",
                extra={"event": LogEvent.ROLE_DETECTED, "master_name": self.master_name},
            )
            return Role.UNKNOWN
        if self.address.matches(*master):
            return Role.PRIMARY
        return Role.SECONDARY


class RedisManager(ManagerBase):
    ENGINE = "redis"

    def __init__(
        self,
        settings: Settings,
        state: ManagerState | None = None,
        client: redis.Redis | None = None,
        sentinel: Sentinel | None = None,
        address: AdvertisedAddress | None = None,
    ) -> None:
        super().__init__(settings, state)
        config = settings.redis

        self.master_name = config.sentinel_master_name or self.state.cluster_comp_name
        self.address = address or resolve_advertised_address(config, settings.identity)

        # ACL users exist since Redis 6
        username = config.default_user if redis_major_version(config.version) >= 6 else None
        password = config.default_password or None

        self._client = client or redis.Redis(
            host="127.0.0.1",
            port=int(config.service_port),
            username=username,
            password=password,
            decode_responses=True,
        )
        self._sentinel = sentinel or Sentinel(
            [_parse_host_port(host) for host in config.sentinel_hosts],
            sentinel_kwargs={
                "username": username,
                "password": password,
                "decode_responses": True,
            },
        )
        self.role_detector = SentinelRoleDetector(self._sentinel, self.master_name, self.address)

    async def ping(self) -> None:
        await self._client.ping()

    async def exec(self, statement: str) -> int:
        await self._client.execute_command(*statement.split())
        return 0

    async def query(self, statement: str) -> bytes:
        result = await self._client.execute_command(*statement.split())
        return json.dumps(result, default=_text).encode()

    async def shutdown(self) -> None:
        await self._client.aclose()
        for client in self._sentinel.sentinels:
            await client.aclose()
