from unittest.mock import patch

import pytest
from pymongo import ReadPreference
from pymongo.errors import ConnectionFailure

from tsj.envconfig import EnvError
from tsj.mongo import Config, connect

URI = "mongodb://localhost:27017"


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv("MONGO_URI", URI)
    monkeypatch.setenv("MONGO_MAX_POOL_SIZE", "20")
    monkeypatch.setenv("MONGO_MIN_POOL_SIZE", "2")
    return monkeypatch


def test_config_from_env(env):
    assert Config.from_env() == Config(URI, 20, 2)


def test_config_missing_uri(env):
    env.delenv("MONGO_URI")
    with pytest.raises(EnvError):
        Config.from_env()


def test_config_negative_pool_size(env):
    env.setenv("MONGO_MIN_POOL_SIZE", "-1")
    with pytest.raises(EnvError):
        Config.from_env()


def test_connect_pings_primary():
    with patch("tsj.mongo.MongoClient") as client_cls:
        client = connect(Config(URI, 20, 2))
    assert client is client_cls.return_value
    args, kwargs = client_cls.call_args
    assert args == (URI,)
    assert kwargs["maxPoolSize"] == 20
    assert kwargs["minPoolSize"] == 2
    assert client.admin.command.call_args.args == ("ping",)
    assert client.admin.command.call_args.kwargs == {"read_preference": ReadPreference.PRIMARY}


def test_connect_failure_closes_client():
    with patch("tsj.mongo.MongoClient") as client_cls:
        client_cls.return_value.admin.command.side_effect = ConnectionFailure("down")
        with pytest.raises(ConnectionFailure):
            connect(Config(URI, 20, 2))
    assert client_cls.return_value.close.call_count == 1