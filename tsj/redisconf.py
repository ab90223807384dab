"""Redis connection and pub/sub settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta

import redis

from tsj.envconfig import EnvError, env_bool, env_duration, env_int, env_str

__all__ = ["Config", "PubConfig", "SubConfig", "new_redis"]

_DIAL_TIMEOUT_SECONDS = 10.0
_LOGIN_ENV = "REDIS_PASSWORD"


def _require_not_empty(name: str) -> None:
    if not os.environ.get(name, ""):
        raise EnvError(f'environment variable "{name}" should not be empty')


@dataclass
class Config:
    """Redis connection settings read from the environment."""

    host: str
    port: str
    db: int
    ttl: timedelta
    max_idle_conns: int
    min_idle_conns: int
    password: str = str()
    use_tls: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        host = env_str("REDIS_HOST", required=True)
        port = env_str("REDIS_PORT", required=True)
        password = env_str(_LOGIN_ENV, str())
        db = env_int("REDIS_DB", required=True)
        ttl = env_duration("REDIS_TTL", required=True)
        _require_not_empty("REDIS_USE_TLS")
        use_tls = env_bool("REDIS_USE_TLS")
        return cls(
            host=host,
            port=port,
            password=password,
            db=db,
            ttl=ttl,
            use_tls=use_tls,
            max_idle_conns=env_int("REDIS_MAX_IDLE_CONNS", required=True),
            min_idle_conns=env_int("REDIS_MIN_IDLE_CONNS", required=True),
        )


@dataclass
class PubConfig:
    """Stream publisher settings read from the environment."""

    logger_debug: bool = False
    logger_trace: bool = False
    max_stream_entries: int = 200

    @staticmethod
    def _pub_values() -> dict:
        _require_not_empty("REDIS_PUB_SUB_LOGGER_DEBUG")
        debug = env_bool("REDIS_PUB_SUB_LOGGER_DEBUG")
        _require_not_empty("REDIS_PUB_SUB_LOGGER_TRACE")
        trace = env_bool("REDIS_PUB_SUB_LOGGER_TRACE")
        return {
            "logger_debug": debug,
            "logger_trace": trace,
            "max_stream_entries": env_int("REDIS_MAX_STREAM_ENTRIES", 200),
        }

    @classmethod
    def from_env(cls) -> "PubConfig":
        return cls(**cls._pub_values())


@dataclass
class SubConfig(PubConfig):
    """Stream subscriber settings read from the environment."""

    consumer_group: str = ""

    @classmethod
    def from_env(cls) -> "SubConfig":
        values = cls._pub_values()
        _require_not_empty("REDIS_PUB_SUB_CONSUMER_GROUP_ID")
        return cls(**values, consumer_group=env_str("REDIS_PUB_SUB_CONSUMER_GROUP_ID"))


def new_redis(config: Config) -> redis.Redis:
    """Create a client and check the server answers a ping."""
    # redis-py pools have no idle-connection bounds, so those settings are not applied.
    client = redis.Redis(
        host=config.host,
        port=int(config.port),
        password=config.password or None,
        db=config.db,
        socket_connect_timeout=_DIAL_TIMEOUT_SECONDS,
        ssl=config.use_tls,
    )
    try:
        client.ping()
    except Exception:
        client.close()
        raise
    return client