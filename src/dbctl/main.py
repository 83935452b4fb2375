"""Sidecar entry point.

Builds the process manager from settings, then runs the HA loop until
SIGTERM/SIGINT. The operations layer is reached through the registry
created here by whatever transport embeds it.
"""

import asyncio
import logging
import signal

from dbctl import __version__
from dbctl.app.config import Settings, get_settings
from dbctl.app.logging import setup_logging
from dbctl.app.metrics import setup_metrics
from dbctl.core.errors import ConfigurationError
from dbctl.core.interfaces import ClusterStore
from dbctl.core.logging_schema import LogEvent
from dbctl.engines.register import ManagerRegistry
from dbctl.ha import HaLoop, LeaseCoordinator
from dbctl.infra.memory_store import InMemoryClusterStore
from dbctl.infra.redis_store import RedisClusterStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> ClusterStore:
    cluster_name = settings.identity.cluster_comp_name or settings.identity.cluster_name
    backend = settings.ha.store_backend.lower()
    if backend == "redis":
        return RedisClusterStore.from_config(settings.store, cluster_name)
    if backend == "memory":
        return InMemoryClusterStore(cluster_name)
    raise ConfigurationError(f"unknown store backend: {settings.ha.store_backend}")


async def run(settings: Settings | None = None) -> None:
    settings = settings or get_settings()

    if settings.metrics.enabled:
        setup_metrics(settings.metrics.port)

    registry = ManagerRegistry(settings)
    manager = registry.init_manager()
    logger.info(
        "Starting dbctl",
        extra={
            "event": LogEvent.APP_STARTED,
            "version": __version__,
            "engine": registry.engine_type,
        },
    )

    store = build_store(settings)
    ha_loop: HaLoop | None = None
    if settings.ha.enabled:
        lease = LeaseCoordinator(
            store,
            manager.current_member_name,
            ttl=settings.ha.ttl,
            timeout=settings.ha.store_timeout,
        )
        ha_loop = HaLoop(
            manager,
            store,
            lease,
            interval=settings.ha.health_check_period,
            member_address=settings.identity.pod_ip,
        )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop.set)

    ha_task = asyncio.create_task(ha_loop.run()) if ha_loop else None
    try:
        await stop.wait()
    finally:
        logger.info("Shutting down dbctl", extra={"event": LogEvent.APP_STOPPED})
        if ha_task is not None:
            ha_task.cancel()
            try:
                await ha_task
            except asyncio.CancelledError:
                pass
        if isinstance(store, RedisClusterStore):
            await store.close()
        await registry.close()


def main() -> None:
    """Run the sidecar."""
    setup_logging()
    asyncio.run(run())


if __name__ == "__main__":
    main()
