"""Typed reading of settings from environment variables."""

from __future__ import annotations

import os
import re
from datetime import timedelta
from decimal import Decimal

__all__ = [
    "EnvError",
    "package_name",
    "parse_duration",
    "env_str",
    "env_int",
    "env_bool",
    "env_duration",
]


class EnvError(ValueError):
    """Raised when an environment variable is missing or cannot be parsed."""


_UNIT_NANOS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_PART = r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
_PART_RE = re.compile(_PART)
_DURATION_RE = re.compile(rf"([-+]?)((?:{_PART})+)")
_INT_RE = re.compile(r"[-+]?\d+")
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def package_name() -> str:
    """Return the name of this package."""
    return "tsj"


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"300ms"``, ``"1.5h"`` or ``"1h30m"``."""
    if text in ("0", "+0", "-0"):
        return timedelta(0)
    match = _DURATION_RE.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid duration {text!r}")
    nanos = sum(
        (Decimal(number) * _UNIT_NANOS[unit] for number, unit in _PART_RE.findall(match.group(2))),
        Decimal(0),
    )
    if match.group(1) == "-":
        nanos = -nanos
    return timedelta(microseconds=float(nanos / 1000))


def _raw(name: str, required: bool) -> str | None:
    if name not in os.environ:
        if required:
            raise EnvError(f'required environment variable "{name}" is not set')
        return None
    value = os.environ[name]
    return value or None


def env_str(name: str, default: str = "", required: bool = False) -> str:
    """Read a string variable."""
    value = _raw(name, required)
    return default if value is None else value


def env_int(name: str, default: int = 0, required: bool = False) -> int:
    """Read an integer variable."""
    value = _raw(name, required)
    if value is None:
        return default
    if not _INT_RE.fullmatch(value):
        raise EnvError(f'environment variable "{name}": invalid integer {value!r}')
    return int(value)


def env_bool(name: str, default: bool = False, required: bool = False) -> bool:
    """Read a boolean variable."""
    value = _raw(name, required)
    if value is None:
        return default
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise EnvError(f'environment variable "{name}": invalid boolean {value!r}')


def env_duration(
    name: str, default: timedelta | None = None, required: bool = False
) -> timedelta:
    """Read a duration variable."""
    value = _raw(name, required)
    if value is None:
        return timedelta(0) if default is None else default
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise EnvError(f'environment variable "{name}": {exc}') from exc