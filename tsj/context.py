"""Per-request context built on top of the current Flask request."""

from __future__ import annotations

from typing import Any

from flask import Request, g, request

__all__ = [
    "REQUEST_ID_CONTEXT_KEY",
    "USER_ID_CONTEXT_KEY",
    "HEADER_X_REQUEST_ID",
    "HEADER_AUTHORIZATION",
    "RequestContext",
    "current_context",
]

REQUEST_ID_CONTEXT_KEY = "requestID"
USER_ID_CONTEXT_KEY = "userID"
HEADER_X_REQUEST_ID = "X-Request-Id"
HEADER_AUTHORIZATION = "Authorization"

_STORE = "_tsj_values"


class RequestContext:
    """Values attached to the request being handled, plus convenience lookups."""

    def __init__(self, req: Request | None = None):
        self._request = req if req is not None else request

    @property
    def request(self) -> Request:
        return self._request

    @staticmethod
    def _values() -> dict[str, Any]:
        return g.setdefault(_STORE, {})

    def get(self, key: str) -> Any:
        """Return the value stored under ``key``, or ``None``."""
        return self._values().get(key)

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key`` for the rest of the request."""
        self._values()[key] = value

    def request_id(self) -> str:
        """Return the request id set by middleware, else the header, else ''."""
        stored = self.get(REQUEST_ID_CONTEXT_KEY)
        if isinstance(stored, str):
            return stored
        return self._request.headers.get(HEADER_X_REQUEST_ID, "")

    def user_id(self) -> str:
        """Return the authenticated user id or raise ``LookupError``."""
        stored = self.get(USER_ID_CONTEXT_KEY)
        if isinstance(stored, str):
            return stored
        raise LookupError("user id not found")


def current_context() -> RequestContext:
    """Return a context for the request currently being handled."""
    return RequestContext()