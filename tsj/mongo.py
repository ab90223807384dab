"""MongoDB settings and client construction."""

from __future__ import annotations

from dataclasses import dataclass

from pymongo import MongoClient, ReadPreference

from tsj.envconfig import EnvError, env_int, env_str

__all__ = ["Config", "connect"]

_TIMEOUT_MS = 10_000


@dataclass
class Config:
    """MongoDB pool settings read from the environment."""

    uri: str
    max_pool_size: int
    min_pool_size: int

    @classmethod
    def from_env(cls) -> "Config":
        config = cls(
            uri=env_str("MONGO_URI", required=True),
            max_pool_size=env_int("MONGO_MAX_POOL_SIZE", required=True),
            min_pool_size=env_int("MONGO_MIN_POOL_SIZE", required=True),
        )
        if config.max_pool_size < 0 or config.min_pool_size < 0:
            raise EnvError("mongo pool sizes must not be negative")
        return config


def connect(config: Config) -> MongoClient:
    """Create a client and check the primary answers a ping."""
    client = MongoClient(
        config.uri,
        maxPoolSize=config.max_pool_size,
        minPoolSize=config.min_pool_size,
        serverSelectionTimeoutMS=_TIMEOUT_MS,
        connectTimeoutMS=_TIMEOUT_MS,
    )
    try:
        client.admin.command("ping", read_preference=ReadPreference.PRIMARY)
    except Exception:
        client.close()
        raise
    return client