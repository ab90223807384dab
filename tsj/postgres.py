"""PostgreSQL connection settings."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import timedelta

from tsj.envconfig import env_duration, env_int, env_str

__all__ = ["LogLevel", "Config"]


class LogLevel(enum.IntEnum):
    """Query trace verbosity; higher values log more."""

    TRACE = 6
    DEBUG = 5
    INFO = 4
    WARN = 3
    ERROR = 2
    NONE = 1

    @classmethod
    def parse(cls, text: str) -> "LogLevel":
        """Parse a level name case-insensitively; unknown names trace nothing."""
        try:
            return cls[text.upper()] if text.lower() == text.lower().strip() and text else cls.NONE
        except KeyError:
            return cls.NONE


@dataclass
class Config:
    """PostgreSQL pool settings read from the environment."""

    url: str
    max_connection: int
    min_connection: int
    max_connection_idle_time: timedelta
    log_level: LogLevel = LogLevel.ERROR

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            url=env_str("POSTGRES_URL", required=True),
            max_connection=env_int("POSTGRES_MAX_CONNECTION", required=True),
            min_connection=env_int("POSTGRES_MIN_CONNECTION", required=True),
            max_connection_idle_time=env_duration("POSTGRES_MAX_IDLE_TIME", required=True),
            log_level=LogLevel.parse(env_str("POSTGRES_LOG_LEVEL", "ERROR")),
        )