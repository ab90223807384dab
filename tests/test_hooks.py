from unittest.mock import patch

import pytest
import redis

from tsj.envconfig import EnvError
from tsj.hooks import mongo_hook, redis_hook
from tsj.runner import Runner, new_infra_hook_option


@pytest.fixture
def redis_env(monkeypatch):
    monkeypatch.setenv("REDIS_HOST", "cache.example.com")
    monkeypatch.setenv("REDIS_PORT", "6380")
    monkeypatch.setenv("REDIS_DB", "2")
    monkeypatch.setenv("REDIS_TTL", "1m")
    monkeypatch.setenv("REDIS_USE_TLS", "false")
    monkeypatch.setenv("REDIS_MAX_IDLE_CONNS", "4")
    monkeypatch.setenv("REDIS_MIN_IDLE_CONNS", "1")


def test_redis_hook_stores_client_and_closes_it_on_shutdown(redis_env):
    with patch("redis.Redis") as redis_cls:
        runner = Runner(new_infra_hook_option("redis", redis_hook))
        runner.request_shutdown()
        runner.run()

    client = redis_cls.return_value
    assert runner.infra.redis() is client
    assert redis_cls.call_args.kwargs["host"] == "cache.example.com"
    assert redis_cls.call_args.kwargs["port"] == int("6380")
    client.ping.assert_called_once_with()
    client.close.assert_called_once_with()


def test_redis_hook_ping_failure_leaves_infra_empty(redis_env):
    runner = Runner()
    with patch("redis.Redis") as redis_cls:
        redis_cls.return_value.ping.side_effect = redis.exceptions.ConnectionError("down")
        with pytest.raises(redis.exceptions.ConnectionError):
            redis_hook(runner)

    with pytest.raises(LookupError, match="redis client is not set"):
        runner.infra.redis()


def test_redis_hook_requires_host(redis_env, monkeypatch):
    monkeypatch.delenv("REDIS_HOST")
    runner = Runner()
    with patch("redis.Redis") as redis_cls:
        with pytest.raises(EnvError, match="REDIS_HOST"):
            redis_hook(runner)
    redis_cls.assert_not_called()


def test_redis_shutdown_hook_fails_without_client(redis_env):
    runner = Runner()
    with patch("redis.Redis"):
        redis_hook(runner)
    runner.infra.redis_client = None
    runner.request_shutdown()

    with pytest.raises(LookupError, match="redis client is not set"):
        runner.run()


def test_mongo_hook_requires_uri(monkeypatch):
    monkeypatch.delenv("MONGO_URI", raising=False)
    monkeypatch.setenv("MONGO_MAX_POOL_SIZE", "10")
    monkeypatch.setenv("MONGO_MIN_POOL_SIZE", "1")
    runner = Runner()

    with pytest.raises(EnvError):
        mongo_hook(runner)
    with pytest.raises(LookupError, match="mongo client is not set"):
        runner.infra.mongo()