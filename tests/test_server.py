from datetime import timedelta

import pytest
import requests
from flask import Flask

from tsj.envconfig import EnvError
from tsj.server import MonitorServerConfig, RestServerConfig, Server, ServerConfig

_REST_VARS = (
    "REST_SERVER_HOST",
    "REST_SERVER_PORT",
    "REST_SERVER_READ_TIMEOUT",
    "REST_SERVER_WRITE_TIMEOUT",
    "REST_ENABLE_CORS",
    "REST_BODY_LIMIT",
)
_MONITOR_VARS = (
    "MONITOR_SERVER_HOST",
    "MONITOR_SERVER_PORT",
    "MONITOR_SERVER_METRIC_PATH",
    "MONITOR_SERVER_STATUS_PATH",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _REST_VARS + _MONITOR_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_addr_joins_host_and_port():
    config = ServerConfig(name="esrv", host="localhost", port=8080)
    assert config.addr() == "localhost:8080"


def test_rest_config_defaults(clean_env):
    clean_env.setenv("REST_SERVER_HOST", "0.0.0.0")
    clean_env.setenv("REST_SERVER_READ_TIMEOUT", "2s")
    clean_env.setenv("REST_SERVER_WRITE_TIMEOUT", "3s")
    config = RestServerConfig.from_env()
    assert config.host == "0.0.0.0"
    assert config.port == 8080
    assert config.read_timeout == timedelta(seconds=2)
    assert config.write_timeout == timedelta(seconds=3)
    assert config.enable_cors is False
    assert config.body_limit == "8K"


def test_rest_config_overrides(clean_env):
    clean_env.setenv("REST_SERVER_HOST", "api")
    clean_env.setenv("REST_SERVER_PORT", "9001")
    clean_env.setenv("REST_SERVER_READ_TIMEOUT", "1s")
    clean_env.setenv("REST_SERVER_WRITE_TIMEOUT", "1s")
    clean_env.setenv("REST_ENABLE_CORS", "true")
    clean_env.setenv("REST_BODY_LIMIT", "2M")
    config = RestServerConfig.from_env()
    assert config.port == 9001
    assert config.enable_cors is True
    assert config.body_limit == "2M"


def test_rest_config_requires_host(clean_env):
    clean_env.setenv("REST_SERVER_READ_TIMEOUT", "1s")
    clean_env.setenv("REST_SERVER_WRITE_TIMEOUT", "1s")
    with pytest.raises(EnvError):
        RestServerConfig.from_env()


def test_rest_config_requires_timeouts(clean_env):
    clean_env.setenv("REST_SERVER_HOST", "api")
    with pytest.raises(EnvError):
        RestServerConfig.from_env()


def test_rest_to_server_config():
    config = RestServerConfig(
        host="api", port=9001, read_timeout=timedelta(seconds=1), write_timeout=timedelta(seconds=2)
    )
    server_config = config.to_server_config()
    assert server_config.name == "esrv"
    assert server_config.host == "api"
    assert server_config.port == 9001
    assert server_config.read_timeout == timedelta(seconds=1)
    assert server_config.write_timeout == timedelta(seconds=2)
    assert server_config.grace_period == timedelta(seconds=5)


def test_monitor_config_defaults(clean_env):
    clean_env.setenv("MONITOR_SERVER_HOST", "0.0.0.0")
    clean_env.setenv("MONITOR_SERVER_PORT", "9100")
    config = MonitorServerConfig.from_env()
    assert config.port == 9100
    assert config.metric_path == "/metric"
    assert config.status_path == "/status"


def test_monitor_config_requires_port(clean_env):
    clean_env.setenv("MONITOR_SERVER_HOST", "0.0.0.0")
    with pytest.raises(EnvError):
        MonitorServerConfig.from_env()


def test_monitor_to_server_config():
    server_config = MonitorServerConfig(host="mon", port=9100).to_server_config()
    assert server_config.name == "msrv"
    assert server_config.read_timeout == timedelta(seconds=5)
    assert server_config.write_timeout == timedelta(seconds=5)
    assert server_config.grace_period == timedelta(seconds=5)
    assert server_config.addr() == "mon:9100"


def _app():
    app = Flask("server_test")

    @app.get("/ping")
    def ping():
        return "pong"

    return app


def test_server_serves_and_stops():
    config = ServerConfig(
        name="test",
        host="127.0.0.1",
        port=0,
        read_timeout=timedelta(seconds=5),
        write_timeout=timedelta(seconds=5),
        grace_period=timedelta(seconds=3),
    )
    server = Server(_app(), config)
    server.listen_and_serve()
    address = server.address
    try:
        response = requests.get(f"http://{address}/ping", timeout=5)
        assert response.status_code == 200
        assert response.text == "pong"
    finally:
        server.shutdown()
    with pytest.raises(requests.ConnectionError):
        requests.get(f"http://{address}/ping", timeout=2)


def test_server_cannot_start_twice():
    server = Server(_app(), ServerConfig(name="test", host="127.0.0.1", port=0))
    server.listen_and_serve()
    try:
        with pytest.raises(RuntimeError):
            server.listen_and_serve()
    finally:
        server.shutdown()


def test_address_before_start_and_after_shutdown():
    config = ServerConfig(name="test", host="127.0.0.1", port=0)
    server = Server(_app(), config)
    server.shutdown()
    assert server.address == config.addr()