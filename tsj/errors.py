"""HTTP error types carried through handlers and clients."""

from __future__ import annotations

from typing import Any

__all__ = ["HTTPError", "ApiError", "internal_server_error", "bad_request"]


class HTTPError(Exception):
    """An error with an HTTP status code and a message."""

    def __init__(self, code: int, message: Any, internal: BaseException | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.internal = internal

    def __str__(self) -> str:
        text = f"code={self.code}, message={self.message}"
        if self.internal is not None:
            text += f", internal={self.internal}"
        return text

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body sent to clients."""
        return {"message": self.message}


class ApiError(HTTPError):
    """An HTTP error that also carries an application error code."""

    def __init__(
        self,
        code: int,
        message: Any,
        custom_code: int = 0,
        internal: BaseException | None = None,
    ):
        super().__init__(code, message, internal)
        self.custom_code = custom_code

    def __str__(self) -> str:
        return f"{self.message}"

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.custom_code:
            body["code"] = self.custom_code
        body["message"] = self.message
        return body

    @classmethod
    def from_dict(cls, data: Any) -> "ApiError":
        """Build an error from a decoded JSON body; the HTTP status is left at 0."""
        if not isinstance(data, dict):
            raise ValueError("error body must be a JSON object")
        custom_code = data.get("code", 0)
        if custom_code is None:
            custom_code = 0
        if isinstance(custom_code, bool) or not isinstance(custom_code, int):
            raise ValueError(f"error code must be an integer, got {custom_code!r}")
        return cls(0, data.get("message"), custom_code)


def internal_server_error(err: BaseException) -> ApiError:
    """Wrap an exception as a 500 error."""
    return ApiError(500, str(err), -50011, internal=err)


def bad_request(err: BaseException) -> ApiError:
    """Wrap an exception as a 400 error."""
    return ApiError(400, str(err), -40011, internal=err)