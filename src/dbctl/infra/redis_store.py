"""Redis-backed cluster store.

Keys (prefix defaults to "dbctl"):
- {prefix}:{cluster}:leader          HASH  lease record, PEXPIRE = ttl
- {prefix}:{cluster}:leader:version  STRING resource version counter
- {prefix}:{cluster}:members         HASH  member name -> address
- {prefix}:{cluster}:ha_config       STRING HaConfig JSON
- {prefix}:{cluster}:switchover      STRING Switchover JSON

Lease compare-and-swap runs server-side in Lua, so concurrent members
cannot interleave between the check and the write. Lease expiry is the
Redis key expiry, which keeps member clock skew out of mutual exclusion.
"""

import logging

import redis.asyncio as redis

from dbctl.app.config import RedisStoreConfig
from dbctl.core.interfaces import ClusterStore
from dbctl.core.models import Cluster, HaConfig, Leader, Member, Switchover, utc_now

logger = logging.getLogger(__name__)

# KEYS: leader, version   ARGV: holder, now, ttl, ttl_ms
CREATE_LEASE_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 1 then
    return nil
end
local version = redis.call('INCR', KEYS[2])
redis.call('HSET', KEYS[1], 'name', ARGV[1], 'acquire_time', ARGV[2],
    'renew_time', ARGV[2], 'ttl', ARGV[3], 'resource_version', version)
redis.call('PEXPIRE', KEYS[1], ARGV[4])
return redis.call('HGETALL', KEYS[1])
"""

# KEYS: leader, version   ARGV: holder, resource_version, now, ttl, ttl_ms
RENEW_LEASE_SCRIPT = """
local current = redis.call('HMGET', KEYS[1], 'name', 'resource_version')
if current[1] ~= ARGV[1] or current[2] ~= ARGV[2] then
    return nil
end
local version = redis.call('INCR', KEYS[2])
redis.call('HSET', KEYS[1], 'renew_time', ARGV[3], 'ttl', ARGV[4],
    'resource_version', version)
redis.call('PEXPIRE', KEYS[1], ARGV[5])
return redis.call('HGETALL', KEYS[1])
"""

# KEYS: leader   ARGV: holder
DELETE_LEASE_SCRIPT = """
if redis.call('HGET', KEYS[1], 'name') == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


def _leader_from_pairs(flat: list | None) -> Leader | None:
    if not flat:
        return None
    data = dict(zip(flat[::2], flat[1::2]))
    return Leader.from_dict(data)


class RedisClusterStore(ClusterStore):
    def __init__(self, client: redis.Redis, cluster_name: str, key_prefix: str = "dbctl") -> None:
        self._client = client
        self._cluster_name = cluster_name
        base = f"{key_prefix}:{cluster_name}"
        self._leader_key = f"{base}:leader"
        self._version_key = f"{base}:leader:version"
        self._members_key = f"{base}:members"
        self._ha_config_key = f"{base}:ha_config"
        self._switchover_key = f"{base}:switchover"

        self._create_lease = client.register_script(CREATE_LEASE_SCRIPT)
        self._renew_lease = client.register_script(RENEW_LEASE_SCRIPT)
        self._delete_lease = client.register_script(DELETE_LEASE_SCRIPT)

    @classmethod
    def from_config(cls, config: RedisStoreConfig, cluster_name: str) -> "RedisClusterStore":
        client = redis.from_url(
            config.url,
            decode_responses=True,
            max_connections=config.max_connections,
        )
        return cls(client, cluster_name, key_prefix=config.key_prefix)

    @property
    def cluster_name(self) -> str:
        return self._cluster_name

    async def get_cluster(self) -> Cluster:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.hgetall(self._members_key)
            pipe.hgetall(self._leader_key)
            pipe.get(self._switchover_key)
            pipe.get(self._ha_config_key)
            members, leader, switchover, ha_config = await pipe.execute()

        return Cluster(
            name=self._cluster_name,
            members=tuple(
                Member(name=name, address=address) for name, address in sorted(members.items())
            ),
            leader=Leader.from_dict(leader) if leader else None,
            switchover=Switchover.model_validate_json(switchover) if switchover else None,
            ha_config=HaConfig.model_validate_json(ha_config) if ha_config else None,
        )

    async def get_members(self) -> list[Member]:
        members = await self._client.hgetall(self._members_key)
        return [Member(name=name, address=address) for name, address in sorted(members.items())]

    async def add_member(self, member: Member) -> None:
        await self._client.hset(self._members_key, member.name, member.address)

    async def get_ha_config(self) -> HaConfig | None:
        raw = await self._client.get(self._ha_config_key)
        return HaConfig.model_validate_json(raw) if raw else None

    async def update_ha_config(self, ha_config: HaConfig) -> None:
        await self._client.set(self._ha_config_key, ha_config.model_dump_json())

    async def get_switchover(self) -> Switchover | None:
        raw = await self._client.get(self._switchover_key)
        return Switchover.model_validate_json(raw) if raw else None

    async def create_switchover(self, switchover: Switchover) -> None:
        await self._client.set(self._switchover_key, switchover.model_dump_json())

    async def delete_switchover(self) -> None:
        await self._client.delete(self._switchover_key)

    async def get_lease(self) -> Leader | None:
        data = await self._client.hgetall(self._leader_key)
        return Leader.from_dict(data) if data else None

    async def create_lease(self, holder: str, ttl: float) -> Leader | None:
        result = await self._create_lease(
            keys=[self._leader_key, self._version_key],
            args=[holder, utc_now().isoformat(), ttl, int(ttl * 1000)],
        )
        return _leader_from_pairs(result)

    async def renew_lease(self, holder: str, resource_version: int, ttl: float) -> Leader | None:
        result = await self._renew_lease(
            keys=[self._leader_key, self._version_key],
            args=[holder, str(resource_version), utc_now().isoformat(), ttl, int(ttl * 1000)],
        )
        return _leader_from_pairs(result)

    async def delete_lease(self, holder: str) -> bool:
        deleted = await self._delete_lease(keys=[self._leader_key], args=[holder])
        return bool(deleted)

    async def close(self) -> None:
        await self._client.aclose()
