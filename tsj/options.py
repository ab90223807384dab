"""Runner options that build and start the REST and monitoring servers."""

from __future__ import annotations

import re
import threading
import time
from typing import TYPE_CHECKING, Any, Callable

from flask import Blueprint, Flask, Response, g, jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from tsj.handlers import rest_log_field_extractor
from tsj.logger import get_logger
from tsj.middleware import error_handler, request_logger
from tsj.runner import RunnerOption, new_database_migration_hook_option, new_startup_hook_option
from tsj.server import MonitorServerConfig, RestServerConfig, Server

if TYPE_CHECKING:
    from tsj.runner import Runner

__all__ = [
    "RestServerHook",
    "MonitorServerHook",
    "SubscriberHook",
    "build_rest_server_option",
    "build_monitor_server_option",
    "default_monitor_hook",
    "build_subscribe_hook",
]

RestServerHook = Callable[["Runner", Flask, Blueprint], Any]
MonitorServerHook = Callable[["Runner", Flask], Any]
SubscriberHook = Callable[["Runner"], Any]

_BODY_LIMIT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([KMGTPE]?)B?", re.IGNORECASE)
_UNIT_POWERS = {"": 0, "K": 1, "M": 2, "G": 3, "T": 4, "P": 5, "E": 6}
_CORS_METHODS = "GET,HEAD,PUT,PATCH,POST,DELETE"


def _parse_body_limit(text: str) -> int:
    match = _BODY_LIMIT_RE.fullmatch(text.strip())
    if match is None:
        raise ValueError(f"invalid body limit {text!r}")
    number, unit = match.groups()
    return int(float(number) * 1024 ** _UNIT_POWERS[unit.upper()])


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class _Metrics:
    """Request counts and durations in the Prometheus text format."""

    _LABELS = ("code", "host", "method", "url")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict[tuple[str, ...], int] = {}
        self._seconds: dict[tuple[str, ...], float] = {}

    def observe(self, labels: tuple[str, ...], seconds: float) -> None:
        with self._lock:
            self._counts[labels] = self._counts.get(labels, 0) + 1
            self._seconds[labels] = self._seconds.get(labels, 0.0) + seconds

    def _label_text(self, labels: tuple[str, ...]) -> str:
        pairs = ",".join(
            f'{name}="{_escape_label(value)}"' for name, value in zip(self._LABELS, labels)
        )
        return "{" + pairs + "}"

    def render(self) -> str:
        with self._lock:
            counts = sorted(self._counts.items())
            seconds = dict(self._seconds)
        lines = [
            "# HELP http_requests_total How many HTTP requests processed.",
            "# TYPE http_requests_total counter",
        ]
        lines += [f"http_requests_total{self._label_text(k)} {v}" for k, v in counts]
        lines += [
            "# HELP http_request_duration_seconds The HTTP request latencies in seconds.",
            "# TYPE http_request_duration_seconds summary",
        ]
        for labels, count in counts:
            text = self._label_text(labels)
            lines.append(f"http_request_duration_seconds_sum{text} {seconds[labels]}")
            lines.append(f"http_request_duration_seconds_count{text} {count}")
        return "\n".join(lines) + "\n"


_METRICS = _Metrics()


def _instrument(app: Flask) -> None:
    @app.before_request
    def _metrics_start():
        g._tsj_metrics_start = time.perf_counter()

    @app.after_request
    def _metrics_observe(response: Response) -> Response:
        started = g.get("_tsj_metrics_start", time.perf_counter())
        url = request.url_rule.rule if request.url_rule is not None else request.path
        labels = (str(response.status_code), request.host, request.method, url)
        _METRICS.observe(labels, time.perf_counter() - started)
        return response


def _register_default_errors(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def _http_exception(exc: HTTPException):
        return jsonify({"message": exc.name}), exc.code

    @app.errorhandler(Exception)
    def _unexpected(_exc: Exception):
        return jsonify({"message": "Internal Server Error"}), 500


def _limit_body(app: Flask, limit: int) -> None:
    app.config["MAX_CONTENT_LENGTH"] = limit

    @app.before_request
    def _check_body_size():
        if request.content_length is not None and request.content_length > limit:
            raise RequestEntityTooLarge()


def _enable_cors(app: Flask) -> None:
    @app.before_request
    def _preflight():
        if request.method != "OPTIONS":
            return None
        response = Response(status=204)
        response.headers.add("Vary", "Origin")
        if "Origin" not in request.headers:
            return response
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = _CORS_METHODS
        requested = request.headers.get("Access-Control-Request-Headers")
        if requested:
            response.headers["Access-Control-Allow-Headers"] = requested
        return response

    @app.after_request
    def _allow_origin(response: Response) -> Response:
        if request.method == "OPTIONS":
            return response
        response.headers.add("Vary", "Origin")
        if "Origin" in request.headers:
            response.headers["Access-Control-Allow-Origin"] = "*"
        return response


def _build_rest_app(config: RestServerConfig, runner: "Runner", hook: RestServerHook) -> Flask:
    app = Flask(__name__)
    error_handler(app)
    _register_default_errors(app)
    _instrument(app)
    request_logger(app, get_logger("request_info"), rest_log_field_extractor)
    _limit_body(app, _parse_body_limit(config.body_limit))
    if config.enable_cors:
        _enable_cors(app)

    root = Blueprint("root", __name__)
    hook(runner, app, root)
    app.register_blueprint(root)
    return app


def build_rest_server_option(hook: RestServerHook) -> RunnerOption:
    """Start the REST server at start-up and stop it at shutdown."""

    def start(runner: "Runner") -> None:
        config = RestServerConfig.from_env()
        runner.log.info("loaded service server config", config=config)
        app = _build_rest_app(config, runner, hook)
        server = Server(app, config.to_server_config())
        server.listen_and_serve()
        runner.add_shutdown_hook("shutdown_rest_server", lambda _rn: server.shutdown())

    return new_startup_hook_option("rest_server", start)


def _build_monitor_app(
    runner: "Runner", config: MonitorServerConfig, hook: MonitorServerHook
) -> Flask:
    app = Flask(__name__)
    log = get_logger("monitor_echo")
    log.set_level("error")
    request_logger(app, log)
    _register_default_errors(app)

    def status() -> Response:
        return Response('{"status":"ok"}', status=200, content_type="text/plain; charset=UTF-8")

    app.add_url_rule(config.status_path, "status", status, methods=["GET"])
    hook(runner, app)
    return app


def build_monitor_server_option(hook: MonitorServerHook) -> RunnerOption:
    """Start the monitoring server at start-up and stop it at shutdown."""

    def start(runner: "Runner") -> None:
        config = MonitorServerConfig.from_env()
        runner.log.info("loaded monitor server config", config=config)
        app = _build_monitor_app(runner, config, hook)
        server = Server(app, config.to_server_config())
        server.listen_and_serve()
        runner.add_shutdown_hook("shutdown_monitor_server", lambda _rn: server.shutdown())

    return new_startup_hook_option("monitor_server", start)


def default_monitor_hook(runner: "Runner", app: Flask) -> None:
    """Expose request metrics on the configured metric path."""
    config = MonitorServerConfig.from_env()

    def metrics() -> Response:
        return Response(_METRICS.render(), content_type="text/plain; version=0.0.4; charset=utf-8")

    app.add_url_rule(config.metric_path, "metrics", metrics, methods=["GET"])


def build_subscribe_hook(hook: SubscriberHook) -> RunnerOption:
    """Run ``hook`` to set up event subscribers, ahead of the start-up hooks."""

    def init(runner: "Runner") -> None:
        log = get_logger("BuildSubscribeHook")
        hook(runner)
        log.info("init event subscribers done")

    return new_database_migration_hook_option("subscribers_init", init)