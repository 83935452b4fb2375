"""Advertised address of the local Redis instance.

Sentinel reports the master as the address it was advertised with, which
depends on how the pod is exposed. Host strategies, first match wins:

1. FIXED_POD_IP_ENABLED    -> IP resolved from the pod FQDN
2. LOAD_BALANCER_ENABLED   -> entry of REDIS_LB_ADVERTISED_HOST for our ordinal
3. any host-network or advertised port variable -> KB_HOST_IP
4. default                 -> pod FQDN

Port: REDIS_ADVERTISED_PORT, then CURRENT_SHARD_ADVERTISED_PORT (entries
"podSvc:port" matched on ordinal), else SERVICE_PORT.
"""

import logging
import socket
from collections.abc import Callable
from dataclasses import dataclass

from dbctl.app.config import IdentityConfig, RedisEngineConfig
from dbctl.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdvertisedAddress:
    host: str
    port: str

    def matches(self, host: str, port: str | int) -> bool:
        return self.host == host and self.port == str(port)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def _ordinal(name: str) -> str:
    return name.rsplit("-", 1)[-1]


def _entries(value: str) -> list[tuple[str, str]]:
    """Split "name:value,name:value" into pairs, skipping malformed items."""
    pairs = []
    for item in value.split(","):
        name, sep, rest = item.strip().partition(":")
        if sep:
            pairs.append((name, rest))
    return pairs


def lookup_fixed_pod_ip(pod_fqdn: str, lookup: Callable[[str], str] = socket.gethostbyname) -> str:
    try:
        return lookup(pod_fqdn)
    except OSError as e:
        raise ConfigurationError(f"failed to get IP address for {pod_fqdn}: {e}") from e


def resolve_host(
    config: RedisEngineConfig,
    identity: IdentityConfig,
    lookup: Callable[[str], str] = socket.gethostbyname,
) -> str:
    if config.fixed_pod_ip_enabled is not None:
        return lookup_fixed_pod_ip(identity.pod_fqdn, lookup)

    if config.load_balancer_enabled is not None:
        ordinal = _ordinal(identity.pod_name)
        for svc, host in _entries(config.lb_advertised_host):
            if _ordinal(svc) == ordinal:
                return host
        return identity.pod_fqdn

    host_network = (
        config.host_network_port,
        config.advertised_port,
        config.cluster_host_network_port,
        config.shard_advertised_port,
    )
    if any(value is not None for value in host_network):
        return identity.host_ip

    return identity.pod_fqdn


def advertised_port(entries: str, member_name: str) -> str:
    """Port assigned to `member_name` in a "podSvc:port,..." list.

    Raises:
        ConfigurationError: If no entry matches the member ordinal.
    """
    ordinal = _ordinal(member_name)
    for svc, port in _entries(entries):
        if _ordinal(svc) == ordinal:
            return port
    raise ConfigurationError(f"failed to get advertised port for {member_name}")


def resolve_port(config: RedisEngineConfig, member_name: str) -> str:
    if config.advertised_port:
        return advertised_port(config.advertised_port, member_name)
    if config.shard_advertised_port:
        return advertised_port(config.shard_advertised_port, member_name)
    return config.service_port


def resolve_advertised_address(
    config: RedisEngineConfig,
    identity: IdentityConfig,
    lookup: Callable[[str], str] = socket.gethostbyname,
) -> AdvertisedAddress:
    address = AdvertisedAddress(
        host=resolve_host(config, identity, lookup),
        port=resolve_port(config, identity.pod_name),
    )
    logger.info("Resolved advertised address", extra={"address": str(address)})
    return address
