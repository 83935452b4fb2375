"""Redis engine (Sentinel topology)."""

from dbctl.engines.redis.manager import RedisManager

__all__ = ["RedisManager"]
