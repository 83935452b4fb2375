"""Sidecar configuration using pydantic-settings.

Identity values (pod name, namespace, ...) are read from a fixed precedence of
environment variables: KB_* names first, then the legacy MY_* names.
"""

import socket
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IdentityConfig(BaseSettings):
    """Pod and cluster identity of this replica."""

    model_config = SettingsConfigDict(populate_by_name=True)

    pod_name: str = Field(
        default_factory=socket.gethostname,
        validation_alias=AliasChoices("KB_POD_NAME", "MY_POD_NAME"),
    )
    pod_ip: str = Field(default="", validation_alias=AliasChoices("KB_POD_IP", "MY_POD_IP"))
    pod_uid: str = Field(default="", validation_alias=AliasChoices("KB_POD_UID", "MY_POD_UID"))
    pod_fqdn: str = Field(default="", validation_alias=AliasChoices("KB_POD_FQDN"))
    host_ip: str = Field(default="", validation_alias=AliasChoices("KB_HOST_IP"))
    namespace: str = Field(
        default="", validation_alias=AliasChoices("KB_NAMESPACE", "MY_NAMESPACE")
    )
    cluster_name: str = Field(
        default="", validation_alias=AliasChoices("KB_CLUSTER_NAME", "MY_CLUSTER_NAME")
    )
    component_name: str = Field(
        default="", validation_alias=AliasChoices("KB_COMP_NAME", "MY_COMP_NAME")
    )
    cluster_comp_name: str = Field(
        default="",
        validation_alias=AliasChoices("KB_CLUSTER_COMP_NAME", "MY_CLUSTER_COMP_NAME"),
    )
    service_port: str = Field(default="", validation_alias=AliasChoices("KB_SERVICE_PORT"))
    service_user: str = Field(default="", validation_alias=AliasChoices("KB_SERVICE_USER"))
    service_password: str = Field(
        default="", validation_alias=AliasChoices("KB_SERVICE_PASSWORD")
    )


class EngineConfig(BaseSettings):
    """Which database engine this sidecar manages."""

    model_config = SettingsConfigDict(populate_by_name=True)

    engine_type: str = Field(default="", validation_alias=AliasChoices("KB_ENGINE_TYPE"))
    data_dir: str = Field(default="", validation_alias=AliasChoices("PGDATA", "KB_DATA_DIR"))


class ProbeConfig(BaseSettings):
    """Probe timing (is_running / is_startup_ready)."""

    model_config = SettingsConfigDict(env_prefix="PROBE_")

    timeout: float = Field(default=0.5)  # seconds


class LockConfig(BaseSettings):
    """Write-protection lock configuration."""

    model_config = SettingsConfigDict(env_prefix="LOCK_")

    # Upper bound for the counting-lock unlock loop
    unlock_timeout: float = Field(default=30.0)  # seconds
    max_unlock_attempts: int | None = Field(default=None)


class HaConfigSettings(BaseSettings):
    """Lease and HA loop configuration."""

    model_config = SettingsConfigDict(env_prefix="HA_", populate_by_name=True)

    enabled: bool = Field(default=True)
    ttl: float = Field(default=15.0, validation_alias=AliasChoices("KB_TTL", "HA_TTL"))
    health_check_period: float = Field(default=5.0)  # seconds
    store_timeout: float = Field(default=5.0)  # seconds (lease store calls)
    store_backend: str = Field(default="redis")  # redis | memory


class MySQLConfig(BaseSettings):
    """MySQL connection configuration."""

    model_config = SettingsConfigDict(env_prefix="MYSQL_")

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3306)
    database: str = Field(default="mysql")
    root_user: str = Field(default="root")
    root_password: str = Field(default="")
    pool_size: int = Field(default=1)
    max_overflow: int = Field(default=4)

    def url(self, driver: str = "mysql+asyncmy") -> str:
        auth = self.root_user if not self.root_password else f"{self.root_user}:{self.root_password}"
        return f"{driver}://{auth}@{self.host}:{self.port}/{self.database}"


class PostgresConfig(BaseSettings):
    """PostgreSQL connection configuration."""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_", populate_by_name=True)

    host: str = Field(default="localhost")
    port: int = Field(default=5432)
    database: str = Field(default="postgres")
    user: str = Field(default="postgres")
    password: str = Field(default="docker")
    pool_size: int = Field(default=1)
    max_overflow: int = Field(default=9)
    patroni_port: str | None = Field(default=None, validation_alias=AliasChoices("PATRONI_PORT"))

    def url(self, host: str | None = None, driver: str = "postgresql+asyncpg") -> str:
        return (
            f"{driver}://{self.user}:{self.password}@{host or self.host}:{self.port}/{self.database}"
        )


class MongoDBConfig(BaseSettings):
    """MongoDB connection configuration."""

    model_config = SettingsConfigDict(env_prefix="MONGODB_", populate_by_name=True)

    hosts: list[str] = Field(default=["127.0.0.1:27017"])
    username: str = Field(
        default="root",
        validation_alias=AliasChoices("KB_SERVICE_USER", "MONGODB_ROOT_USER", "MONGODB_USER"),
    )
    password: str = Field(
        default="",
        validation_alias=AliasChoices(
            "KB_SERVICE_PASSWORD", "MONGODB_ROOT_PASSWORD", "MONGODB_PASSWORD"
        ),
    )
    direct: bool = Field(default=True)
    operation_timeout: float = Field(default=5.0)  # seconds


class RedisEngineConfig(BaseSettings):
    """Managed Redis instance and its Sentinel configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    default_user: str = Field(
        default="default", validation_alias=AliasChoices("REDIS_DEFAULT_USER")
    )
    default_password: str = Field(
        default="", validation_alias=AliasChoices("REDIS_DEFAULT_PASSWORD")
    )
    version: str = Field(default="7", validation_alias=AliasChoices("REDIS_VERSION"))
    sentinel_master_name: str | None = Field(
        default=None, validation_alias=AliasChoices("CUSTOM_SENTINEL_MASTER_NAME")
    )
    sentinel_hosts: list[str] = Field(
        default=["127.0.0.1:26379"], validation_alias=AliasChoices("REDIS_SENTINEL_HOSTS")
    )
    service_port: str = Field(default="6379", validation_alias=AliasChoices("SERVICE_PORT"))

    # Advertised address strategies (presence of the key selects the strategy)
    fixed_pod_ip_enabled: str | None = Field(
        default=None, validation_alias=AliasChoices("FIXED_POD_IP_ENABLED")
    )
    load_balancer_enabled: str | None = Field(
        default=None, validation_alias=AliasChoices("LOAD_BALANCER_ENABLED")
    )
    lb_advertised_host: str = Field(
        default="", validation_alias=AliasChoices("REDIS_LB_ADVERTISED_HOST")
    )
    host_network_port: str | None = Field(
        default=None, validation_alias=AliasChoices("REDIS_HOST_NETWORK_PORT")
    )
    advertised_port: str | None = Field(
        default=None, validation_alias=AliasChoices("REDIS_ADVERTISED_PORT")
    )
    cluster_host_network_port: str | None = Field(
        default=None, validation_alias=AliasChoices("REDIS_CLUSTER_HOST_NETWORK_PORT")
    )
    shard_advertised_port: str | None = Field(
        default=None, validation_alias=AliasChoices("CURRENT_SHARD_ADVERTISED_PORT")
    )


class RedisStoreConfig(BaseSettings):
    """Redis connection used as the lease/cluster store."""

    model_config = SettingsConfigDict(env_prefix="STORE_REDIS_")

    url: str = Field(default="redis://127.0.0.1:6379/0")
    key_prefix: str = Field(default="dbctl")
    max_connections: int = Field(default=10)


class MetricsConfig(BaseSettings):
    """Prometheus metrics configuration."""

    model_config = SettingsConfigDict(env_prefix="METRICS_")

    enabled: bool = Field(default=True)
    port: int = Field(default=9901)


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Rate limiting:
    - Prevents log storms from repeated probe failures
    - ERROR logs bypass rate limiting (always logged)
    """

    model_config = SettingsConfigDict(env_prefix="LOGGING_")

    level: str = Field(default="INFO")
    schema_version: str = Field(default="1.0")
    rate_limit_per_minute: int = Field(default=100)
    service_name: str = Field(default="dbctl")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DBCTL_",
        env_nested_delimiter="__",
    )

    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    lock: LockConfig = Field(default_factory=LockConfig)
    ha: HaConfigSettings = Field(default_factory=HaConfigSettings)
    mysql: MySQLConfig = Field(default_factory=MySQLConfig)
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    mongodb: MongoDBConfig = Field(default_factory=MongoDBConfig)
    redis: RedisEngineConfig = Field(default_factory=RedisEngineConfig)
    store: RedisStoreConfig = Field(default_factory=RedisStoreConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


@lru_cache
def get_settings() -> Settings:
    return Settings()
