"""JSON HTTP client calls that forward the request id."""

from __future__ import annotations

import json
from typing import Any, Mapping

import requests
from pydantic import BaseModel
from requests.structures import CaseInsensitiveDict

from tsj.context import HEADER_X_REQUEST_ID
from tsj.errors import ApiError

__all__ = ["get", "post", "put", "patch"]

_CONTENT_TYPE = "application/json"


def _encode(body: Any) -> bytes:
    if isinstance(body, BaseModel):
        body = body.model_dump(mode="json")
    return (json.dumps(body, separators=(",", ":")) + "\n").encode("utf-8")


def _send(
    method: str,
    request_id: str,
    url: str,
    headers: Mapping[str, str] | None,
    body: Any = None,
) -> Any:
    merged: CaseInsensitiveDict = CaseInsensitiveDict(dict(headers or {}))
    merged["Content-Type"] = _CONTENT_TYPE
    merged[HEADER_X_REQUEST_ID] = request_id
    data = None if body is None else _encode(body)

    with requests.request(method, url, headers=merged, data=data) as response:
        content = response.content
        status = response.status_code

    if status < 200 or status >= 400:
        decoded = json.loads(content)
        raise ApiError.from_dict({} if decoded is None else decoded)
    return json.loads(content)


def get(request_id: str, url: str, headers: Mapping[str, str] | None = None) -> Any:
    """Send a GET request and return the decoded JSON body.

    A status outside 200-399 raises ``ApiError`` built from the response body.
    """
    return _send("GET", request_id, url, headers)


def post(
    request_id: str, url: str, headers: Mapping[str, str] | None = None, body: Any = None
) -> Any:
    """Send a POST request with an optional JSON body."""
    return _send("POST", request_id, url, headers, body)


def put(
    request_id: str, url: str, headers: Mapping[str, str] | None = None, body: Any = None
) -> Any:
    """Send a PUT request with an optional JSON body."""
    return _send("PUT", request_id, url, headers, body)


def patch(
    request_id: str, url: str, headers: Mapping[str, str] | None = None, body: Any = None
) -> Any:
    """Send a PATCH request with an optional JSON body."""
    return _send("PATCH", request_id, url, headers, body)