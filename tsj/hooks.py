"""Infrastructure hooks that connect shared clients and close them on shutdown."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tsj import mongo, redisconf
from tsj.logger import get_logger

if TYPE_CHECKING:
    from tsj.runner import Runner

__all__ = ["redis_hook", "mongo_hook"]


def redis_hook(runner: "Runner") -> None:
    """Connect to Redis, store the client and register its shutdown."""
    log = get_logger("RedisHook")
    config = redisconf.Config.from_env()
    log.info("loaded redis config")

    client = redisconf.new_redis(config)
    log.info("redis connected")
    runner.infra.redis_client = client

    def shutdown(rn: "Runner") -> None:
        shutdown_log = get_logger("AddShutdownHook")
        rn.infra.redis().close()
        shutdown_log.info("shutdown server", name="redis")

    runner.add_shutdown_hook("redis_shutdown", shutdown)


def mongo_hook(runner: "Runner") -> None:
    """Connect to MongoDB, store the client and register its shutdown."""
    log = get_logger("MongoHook")
    config = mongo.Config.from_env()
    log.info("loaded mongo db config")

    client = mongo.connect(config)
    log.info("mongo connected")
    runner.infra.mongo_client = client

    def shutdown(rn: "Runner") -> None:
        shutdown_log = get_logger("AddShutdownHook")
        rn.infra.mongo().close()
        shutdown_log.info("shutdown server", name="mongodb")

    runner.add_shutdown_hook("mongo_shutdown", shutdown)