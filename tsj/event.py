"""Event envelopes and the publisher/subscriber interfaces."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from typing import Any, Callable, Protocol, TypeVar, runtime_checkable

from tsj.logger import Logger, get_logger

__all__ = [
    "EventSchema",
    "ConsumeFunc",
    "Subscriber",
    "Publisher",
    "unpack_event",
    "consume",
]

T = TypeVar("T")

ConsumeFunc = Callable[[str], None]


@dataclass
class EventSchema:
    """A CloudEvents-style envelope around an event payload."""

    specversion: str = ""
    type: str = ""
    source: str = ""
    id: str = ""
    time: str = ""
    subject: str = ""
    data: Any = None

    @classmethod
    def from_dict(cls, data: Any) -> "EventSchema":
        if not isinstance(data, dict):
            raise ValueError("event must be a JSON object")
        values: dict[str, Any] = {}
        for field in fields(cls):
            if field.name not in data:
                continue
            value = data[field.name]
            if field.name != "data" and value is not None and not isinstance(value, str):
                raise ValueError(f"event field {field.name!r} must be a string")
            values[field.name] = "" if value is None and field.name != "data" else value
        return cls(**values)


@runtime_checkable
class Subscriber(Protocol):
    """Consumes the messages of one topic."""

    def start(self) -> None: ...

    def close(self) -> None: ...

    def group_id(self) -> str: ...

    def topic(self) -> str: ...


@runtime_checkable
class Publisher(Protocol):
    """Publishes messages to one topic."""

    def publish_message(self, *messages: str) -> None: ...

    def close(self) -> None: ...

    def topic(self) -> str: ...


def unpack_event(message: str | bytes) -> EventSchema:
    """Decode a JSON event; an empty message gives an empty envelope."""
    if not message:
        return EventSchema()
    decoded = json.loads(message)
    if decoded is None:
        return EventSchema()
    return EventSchema.from_dict(decoded)


def consume(
    message: str | bytes,
    name: str,
    delegate: Callable[[Logger, EventSchema], T],
) -> T:
    """Decode an event and hand it to ``delegate`` with a logger named ``name``."""
    log = get_logger(name)
    try:
        schema = unpack_event(message)
        return delegate(log, schema)
    finally:
        log.info("completed")