"""Structured loggers configured from the environment."""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TextIO

from tsj.envconfig import EnvError, env_str

__all__ = [
    "Config",
    "LogConfig",
    "Logger",
    "get_default_log_config",
    "get_logger",
    "get_logger_with_config",
]

_LEVELS = {
    "debug": logging.DEBUG,
    "DEBUG": logging.DEBUG,
    "info": logging.INFO,
    "INFO": logging.INFO,
    "warn": logging.WARNING,
    "WARN": logging.WARNING,
    "error": logging.ERROR,
    "ERROR": logging.ERROR,
    "dpanic": logging.CRITICAL,
    "DPANIC": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "PANIC": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "FATAL": logging.CRITICAL,
}
_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}
_ENCODINGS = ("console", "json")


@dataclass
class LogConfig:
    """How a logger renders and filters its records."""

    level: int = logging.INFO
    encoding: str = "console"
    time_key: str = "datetime"
    disable_caller: bool = False
    development: bool = False
    stream: TextIO | None = None


@dataclass
class Config:
    """Logger settings as read from the environment."""

    mode: str = "development"
    level: str = "DEBUG"
    encoding: str = "console"

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            mode=env_str("LOG_MODE", "development"),
            level=env_str("LOG_LEVEL", "DEBUG"),
            encoding=env_str("LOG_ENCODING", "console"),
        )

    def to_log_config(self) -> LogConfig:
        """Turn the settings into a logger configuration."""
        if self.mode == "production":
            config = LogConfig(encoding="json", disable_caller=True)
        else:
            config = LogConfig(encoding=self.encoding, development=True)
        level = logging.INFO
        if self.level:
            parsed = _LEVELS.get(self.level)
            if parsed is None:
                print(f"ignored to invalid log level '{self.level}'")
            else:
                level = parsed
        config.level = level
        return config


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        try:
            return _LEVELS[level]
        except KeyError:
            raise ValueError(f"unrecognized level: {level!r}") from None
    return int(level)


def _timestamp(created: float) -> str:
    moment = datetime.fromtimestamp(created).astimezone()
    return (
        moment.strftime("%Y-%m-%dT%H:%M:%S.")
        + f"{moment.microsecond // 1000:03d}"
        + moment.strftime("%z")
    )


class _Handler(logging.Handler):
    def __init__(self, config: LogConfig):
        super().__init__()
        self._config = config

    def format(self, record: logging.LogRecord) -> str:
        config = self._config
        level = _LEVEL_NAMES.get(record.levelno, record.levelname.lower())
        caller = None
        if not config.disable_caller:
            folder = os.path.basename(os.path.dirname(record.pathname))
            caller = f"{folder}/{os.path.basename(record.pathname)}:{record.lineno}"
        fields: dict[str, Any] = getattr(record, "tsj_fields", {})
        message = record.getMessage()
        stamp = _timestamp(record.created)
        if config.encoding == "json":
            document: dict[str, Any] = {"level": level, config.time_key: stamp, "logger": record.name}
            if caller is not None:
                document["caller"] = caller
            document["msg"] = message
            document.update(fields)
            return json.dumps(document, default=str)
        parts = [stamp, level, record.name]
        if caller is not None:
            parts.append(caller)
        parts.append(message)
        if fields:
            parts.append(json.dumps(fields, default=str))
        return "\t".join(parts)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            stream = self._config.stream or sys.stderr
            stream.write(self.format(record) + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)


class Logger:
    """A named logger with persistent key/value fields and a changeable level."""

    def __init__(self, name: str, config: LogConfig):
        if config.encoding not in _ENCODINGS:
            raise ValueError(f"no encoder registered for name {config.encoding!r}")
        self.name = name
        self._level = config.level
        self._fields: dict[str, Any] = {}
        self._logger = logging.Logger(name)
        self._logger.propagate = False
        self._logger.addHandler(_Handler(config))

    @property
    def level(self) -> int:
        return self._level

    def set_level(self, level: int | str) -> None:
        """Change the minimum level that is written."""
        self._level = _coerce_level(level)

    def with_fields(self, **kwargs: Any) -> None:
        """Attach fields to every later record of this logger."""
        self._fields.update(kwargs)

    def _emit(self, levelno: int, msg: Any, fields: dict[str, Any]) -> None:
        if levelno < self._level:
            return
        self._logger.log(
            levelno,
            str(msg),
            extra={"tsj_fields": {**self._fields, **fields}},
            stacklevel=3,
        )

    def debug(self, msg: Any, **kwargs: Any) -> None:
        self._emit(logging.DEBUG, msg, kwargs)

    def info(self, msg: Any, **kwargs: Any) -> None:
        self._emit(logging.INFO, msg, kwargs)

    def warning(self, msg: Any, **kwargs: Any) -> None:
        self._emit(logging.WARNING, msg, kwargs)

    def error(self, msg: Any, **kwargs: Any) -> None:
        self._emit(logging.ERROR, msg, kwargs)


def get_default_log_config() -> LogConfig:
    """Build a logger configuration from the environment."""
    try:
        return Config.from_env().to_log_config()
    except EnvError as exc:
        raise RuntimeError(f"fail to load logger config: {exc}") from exc


def get_logger(name: str) -> Logger:
    """Return a logger configured from the environment."""
    return get_logger_with_config(name, get_default_log_config())


def get_logger_with_config(name: str, config: LogConfig) -> Logger:
    """Return a logger with an explicit configuration."""
    return Logger(name, config)