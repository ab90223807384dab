"""HTTP server settings and a background server with graceful shutdown."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from werkzeug.serving import BaseWSGIServer, WSGIRequestHandler, make_server

from tsj.envconfig import env_bool, env_duration, env_int, env_str
from tsj.logger import get_logger

__all__ = ["ServerConfig", "RestServerConfig", "MonitorServerConfig", "Server"]

_GRACE_PERIOD = timedelta(seconds=5)
_MONITOR_TIMEOUT = timedelta(seconds=5)


@dataclass
class ServerConfig:
    """Everything a running server needs."""

    name: str
    host: str
    port: int
    read_timeout: timedelta = field(default_factory=timedelta)
    write_timeout: timedelta = field(default_factory=timedelta)
    grace_period: timedelta = _GRACE_PERIOD

    def addr(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class RestServerConfig:
    """REST server settings read from the environment."""

    host: str
    read_timeout: timedelta
    write_timeout: timedelta
    port: int = 8080
    enable_cors: bool = False
    body_limit: str = "8K"

    @classmethod
    def from_env(cls) -> "RestServerConfig":
        return cls(
            host=env_str("REST_SERVER_HOST", required=True),
            port=env_int("REST_SERVER_PORT", 8080),
            read_timeout=env_duration("REST_SERVER_READ_TIMEOUT", required=True),
            write_timeout=env_duration("REST_SERVER_WRITE_TIMEOUT", required=True),
            enable_cors=env_bool("REST_ENABLE_CORS", False),
            body_limit=env_str("REST_BODY_LIMIT", "8K"),
        )

    def to_server_config(self) -> ServerConfig:
        return ServerConfig(
            name="esrv",
            host=self.host,
            port=self.port,
            read_timeout=self.read_timeout,
            write_timeout=self.write_timeout,
            grace_period=_GRACE_PERIOD,
        )


@dataclass
class MonitorServerConfig:
    """Monitoring server settings read from the environment."""

    host: str
    port: int
    metric_path: str = "/metric"
    status_path: str = "/status"

    @classmethod
    def from_env(cls) -> "MonitorServerConfig":
        return cls(
            host=env_str("MONITOR_SERVER_HOST", required=True),
            port=env_int("MONITOR_SERVER_PORT", required=True),
            metric_path=env_str("MONITOR_SERVER_METRIC_PATH", "/metric"),
            status_path=env_str("MONITOR_SERVER_STATUS_PATH", "/status"),
        )

    def to_server_config(self) -> ServerConfig:
        return ServerConfig(
            name="msrv",
            host=self.host,
            port=self.port,
            read_timeout=_MONITOR_TIMEOUT,
            write_timeout=_MONITOR_TIMEOUT,
            grace_period=_GRACE_PERIOD,
        )


def _socket_timeout(config: ServerConfig) -> float | None:
    # A zero timeout means "no limit"; sockets have one timeout for both directions.
    timeouts = (config.read_timeout, config.write_timeout)
    if any(t <= timedelta(0) for t in timeouts):
        return None
    return max(timeouts).total_seconds()


class Server:
    """Serves a WSGI application on a background thread."""

    def __init__(self, app: Any, config: ServerConfig):
        self.name = config.name
        self._app = app
        self._config = config
        self._server: BaseWSGIServer | None = None
        self._thread: threading.Thread | None = None
        self._handler = type(
            "_TimeoutRequestHandler",
            (WSGIRequestHandler,),
            {"timeout": _socket_timeout(config)},
        )
        get_logger(config.name).info(
            "init server", name=config.name, host=config.host, port=config.port
        )

    @property
    def address(self) -> str:
        """The configured address, or the bound one while serving."""
        if self._server is None:
            return self._config.addr()
        host, port = self._server.server_address[:2]
        return f"{host}:{port}"

    def listen_and_serve(self) -> None:
        """Bind the socket and start serving in the background."""
        if self._server is not None:
            raise RuntimeError(f"server {self.name!r} is already running")
        get_logger(self.name).info("start server", name=self.name)
        self._server = make_server(
            self._config.host,
            self._config.port,
            self._app,
            threaded=True,
            request_handler=self._handler,
        )
        self._thread = threading.Thread(
            target=self._server.serve_forever, name=f"{self.name}-server", daemon=True
        )
        self._thread.start()

    def shutdown(self) -> None:
        """Stop serving, waiting at most the grace period."""
        log = get_logger(self.name)
        log.info("shutdown server", name=self.name)
        server, thread = self._server, self._thread
        if server is None:
            return
        grace = self._config.grace_period.total_seconds()
        stopper = threading.Thread(target=server.shutdown, daemon=True)
        stopper.start()
        stopper.join(grace)
        if stopper.is_alive():
            log.error(
                "could not gracefully shut down web server. error: "
                f"not stopped within {self._config.grace_period}"
            )
        elif thread is not None:
            thread.join(grace)
        server.server_close()
        self._server = None
        self._thread = None