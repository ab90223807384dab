"""Publishing to and consuming from Redis streams."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Iterator, Mapping
from uuid import uuid4

import redis

from tsj.event import ConsumeFunc
from tsj.logger import get_logger
from tsj.redisconf import Config, PubConfig, SubConfig, new_redis

__all__ = [
    "UUID_KEY",
    "PAYLOAD_KEY",
    "METADATA_KEY",
    "Message",
    "StreamPublisher",
    "new_publisher",
    "StreamSubscriber",
    "new_subscriber",
    "MessagePublisher",
    "MessageSubscriber",
    "MultiSubscriber",
]

UUID_KEY = "_watermill_message_uuid"
PAYLOAD_KEY = "payload"
METADATA_KEY = "metadata"

_BLOCK_MS = 100
_BATCH_SIZE = 10


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _bytes(value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


@dataclass
class Message:
    """One stream entry: an id, a payload and optional metadata."""

    uuid: str
    payload: bytes
    metadata: dict[str, str] = field(default_factory=dict)
    stream_id: str = ""
    on_ack: Callable[[], Any] | None = field(default=None, repr=False, compare=False)
    _acked: bool = field(default=False, init=False, repr=False, compare=False)

    @classmethod
    def new(cls, payload: str | bytes, metadata: Mapping[str, str] | None = None) -> "Message":
        """Create a message with a fresh random id."""
        return cls(str(uuid4()), _bytes(payload), dict(metadata or {}))

    def ack(self) -> bool:
        """Acknowledge the message; returns False if it was already acknowledged."""
        if self._acked:
            return False
        self._acked = True
        if self.on_ack is not None:
            self.on_ack()
        return True

    def to_fields(self) -> dict[str, str | bytes]:
        """Return the stream entry fields for this message."""
        fields: dict[str, str | bytes] = {UUID_KEY: self.uuid, PAYLOAD_KEY: self.payload}
        if self.metadata:
            fields[METADATA_KEY] = json.dumps(self.metadata)
        return fields

    @classmethod
    def from_fields(
        cls,
        stream_id: str,
        fields: Mapping[Any, Any],
        on_ack: Callable[[], Any] | None = None,
    ) -> "Message":
        """Build a message from the fields of a stream entry."""
        decoded = {_text(key): value for key, value in fields.items()}
        raw_metadata = decoded.get(METADATA_KEY)
        metadata = json.loads(_text(raw_metadata)) if raw_metadata else {}
        return cls(
            uuid=_text(decoded.get(UUID_KEY, "")),
            payload=_bytes(decoded.get(PAYLOAD_KEY, b"")),
            metadata=metadata,
            stream_id=stream_id,
            on_ack=on_ack,
        )


class StreamPublisher:
    """Appends messages to Redis streams."""

    def __init__(self, client: Any, topic: str, max_stream_entries: int = 200):
        self.client = client
        self.topic = topic
        self.max_stream_entries = max_stream_entries

    def publish(self, topic: str, *messages: Message) -> None:
        """Append each message to the stream named ``topic``."""
        for message in messages:
            self.client.xadd(topic, message.to_fields())

    def close(self) -> None:
        """Close the underlying client."""
        self.client.close()


def new_publisher(config: PubConfig, topic: str) -> StreamPublisher:
    """Connect using the environment's Redis settings and return a publisher."""
    log = get_logger("NewPublisher")
    connection = Config.from_env()
    log.info("loaded redis publisher config")
    client = new_redis(connection)
    log.info("redis publisher connected")
    return StreamPublisher(client, topic, config.max_stream_entries)


def _entries(response: Any) -> Iterator[tuple[str, Mapping[Any, Any]]]:
    for _name, entries in response or []:
        for entry_id, fields in entries:
            if fields is None:
                continue
            yield _text(entry_id), fields


class StreamSubscriber:
    """Reads messages from a stream, through a consumer group when one is set."""

    def __init__(
        self,
        client: Any,
        topic: str,
        consumer_group: str = "",
        consumer_name: str | None = None,
        block_ms: int = _BLOCK_MS,
        batch_size: int = _BATCH_SIZE,
    ):
        self.client = client
        self.topic = topic
        self.group_id = consumer_group
        self._consumer = consumer_name or uuid4().hex
        self._block_ms = block_ms
        self._batch_size = batch_size
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def subscribe(self, topic: str) -> Iterator[Message]:
        """Prepare the stream and return an iterator over its messages until closed."""
        if self.closed:
            raise RuntimeError("subscriber is closed")
        if self.group_id:
            try:
                self.client.xgroup_create(topic, self.group_id, id="0", mkstream=True)
            except redis.exceptions.ResponseError as exc:
                if "BUSYGROUP" not in str(exc):
                    raise
            return self._read_group(topic)
        latest = self.client.xrevrange(topic, count=1)
        last_id = _text(latest[0][0]) if latest else "0-0"
        return self._read_fan_out(topic, last_id)

    def _read_group(self, topic: str) -> Iterator[Message]:
        while not self.closed:
            response = self.client.xreadgroup(
                self.group_id,
                self._consumer,
                {topic: ">"},
                count=self._batch_size,
                block=self._block_ms,
            )
            for stream_id, fields in _entries(response):
                if self.closed:
                    return
                ack = partial(self.client.xack, topic, self.group_id, stream_id)
                yield Message.from_fields(stream_id, fields, on_ack=ack)

    def _read_fan_out(self, topic: str, last_id: str) -> Iterator[Message]:
        while not self.closed:
            response = self.client.xread(
                {topic: last_id}, count=self._batch_size, block=self._block_ms
            )
            for stream_id, fields in _entries(response):
                last_id = stream_id
                if self.closed:
                    return
                yield Message.from_fields(stream_id, fields)

    def close(self) -> None:
        """Stop delivering messages."""
        self._closed.set()


def new_subscriber(config: SubConfig, client: Any, topic: str) -> StreamSubscriber:
    """Return a subscriber for ``topic`` using the configured consumer group."""
    return StreamSubscriber(client, topic, consumer_group=config.consumer_group)


class MessagePublisher:
    """Publishes text messages to one topic, keeping the stream bounded."""

    def __init__(self, publisher: StreamPublisher):
        self._pub = publisher

    def publish_message(self, *messages: str) -> None:
        """Trim the stream to its maximum length, then append the messages."""
        built = [Message.new(text) for text in messages]
        self._pub.client.xtrim(
            self._pub.topic, maxlen=self._pub.max_stream_entries, approximate=False
        )
        self._pub.publish(self._pub.topic, *built)

    def close(self) -> None:
        self._pub.close()

    def topic(self) -> str:
        return self._pub.topic


class MessageSubscriber:
    """Feeds each message of one topic to a consume function."""

    def __init__(self, subscriber: StreamSubscriber, consume_func: ConsumeFunc):
        self._sub = subscriber
        self._consume = consume_func
        self._done = threading.Event()

    def close(self) -> None:
        """Stop consuming; closing twice raises ``RuntimeError``."""
        if self._done.is_set():
            raise RuntimeError("subscriber is already closed")
        self._done.set()
        self._sub.close()

    def group_id(self) -> str:
        return self._sub.group_id

    def topic(self) -> str:
        return self._sub.topic

    def start(self) -> None:
        """Consume messages until closed; errors from the consume function are logged."""
        log = get_logger("Redis Subcriber")
        log.with_fields(topic=self.topic())
        log.info("subscription start...")
        try:
            messages = self._sub.subscribe(self.topic())
        except Exception as exc:
            log.error("subscribe error", error=str(exc))
            raise
        for message in messages:
            if self._done.is_set():
                break
            if not message.uuid:
                log.debug("empty message id", topic=self.topic())
                continue
            try:
                self._consume_message(message)
            except Exception as exc:
                log.error(
                    "subscription error, fail to consume the message",
                    error=str(exc),
                    topic=self.topic(),
                )
        log.info("subscription ended")

    def _consume_message(self, message: Message) -> None:
        try:
            self._consume(message.payload.decode("utf-8", errors="replace"))
        finally:
            if not message.ack():
                get_logger("consumeMessage").info("message is already ack", message=message.uuid)


def _connect_from_env() -> Any:
    log = get_logger("Subscribe")
    config = Config.from_env()
    log.info("loaded redis subscribe config")
    client = new_redis(config)
    log.info("redis subscribe connected")
    return client


class MultiSubscriber:
    """Runs one background subscriber per subscribed topic."""

    def __init__(self, config: SubConfig, client_factory: Callable[[], Any] | None = None):
        self.config = config
        self.subscribers: list[Any] = []
        self._client_factory = client_factory or _connect_from_env
        self._threads: list[threading.Thread] = []

    def subscribe(self, topic: str, consume_func: ConsumeFunc) -> None:
        """Connect and start consuming ``topic`` on a background thread."""
        client = self._client_factory()
        subscriber = MessageSubscriber(new_subscriber(self.config, client, topic), consume_func)
        self.subscribers.append(subscriber)
        thread = threading.Thread(target=subscriber.start, name=f"subscriber-{topic}", daemon=True)
        self._threads.append(thread)
        thread.start()

    def close(self) -> None:
        """Close every subscriber, raising one error that lists all failures."""
        problems = []
        for subscriber in self.subscribers:
            try:
                subscriber.close()
            except Exception as exc:
                problems.append(f"[{subscriber.group_id()}/{subscriber.topic()}:{exc}]")
        if problems:
            raise RuntimeError(f"errors when close subscribers: {','.join(problems)}")