import json

import pytest

from tsj.event import EventSchema, consume, unpack_event

SAMPLE = {
    "specversion": "1.0",
    "type": "Microsoft.Storage.BlobCreated",
    "source": "/subscriptions/{subscription-id}/resourceGroups/{resource-group}",
    "id": "9aeb0fdf-c01e-0131-0922-9eb54906e209",
    "time": "2019-11-18T15:13:39.4589254Z",
    "subject": "blobServices/default/containers/{storage-container}/blobs/{new-file}",
    "data": {"api": "PutBlockList", "contentType": "image/png", "contentLength": 30699},
}


def test_unpack_sample_event():
    schema = unpack_event(json.dumps(SAMPLE))
    assert schema.specversion == SAMPLE["specversion"]
    assert schema.type == SAMPLE["type"]
    assert schema.id == SAMPLE["id"]
    assert schema.subject == SAMPLE["subject"]
    assert schema.data == SAMPLE["data"]


def test_unpack_bytes():
    schema = unpack_event(json.dumps(SAMPLE).encode())
    assert schema.time == SAMPLE["time"]


def test_unpack_empty_message():
    assert unpack_event("") == EventSchema()


def test_unpack_missing_fields_are_empty():
    schema = unpack_event('{"id": "abc"}')
    assert schema.id == "abc"
    assert schema.type == ""
    assert schema.data is None


@pytest.mark.parametrize("message", ["{not json", "[1, 2]", '{"type": 5}'])
def test_unpack_invalid(message):
    with pytest.raises(ValueError):
        unpack_event(message)


def test_consume_passes_logger_and_schema():
    seen = []

    def delegate(log, schema):
        seen.append((log.name, schema))
        return schema.type

    result = consume(json.dumps(SAMPLE), "consumer", delegate)
    assert result == SAMPLE["type"]
    assert seen[0][0] == "consumer"
    assert seen[0][1].source == SAMPLE["source"]


def test_consume_propagates_delegate_error():
    def delegate(log, schema):
        raise RuntimeError("failed")

    with pytest.raises(RuntimeError, match="failed"):
        consume(json.dumps(SAMPLE), "consumer", delegate)


def test_consume_invalid_message_skips_delegate():
    calls = []
    with pytest.raises(ValueError):
        consume("{oops", "consumer", lambda log, schema: calls.append(schema))
    assert calls == []