"""Request hooks for Flask applications: errors, auth, request ids and logging."""

from __future__ import annotations

import time
import uuid
from datetime import timedelta
from typing import Any, Callable, Mapping, Protocol

from flask import Flask, Response, g, jsonify, request

from tsj.context import (
    HEADER_AUTHORIZATION,
    HEADER_X_REQUEST_ID,
    REQUEST_ID_CONTEXT_KEY,
    USER_ID_CONTEXT_KEY,
    RequestContext,
    current_context,
)
from tsj.errors import ApiError, HTTPError
from tsj.logger import Logger

__all__ = [
    "AuthProvider",
    "LastOnlineProvider",
    "Skipper",
    "LogFieldExtractor",
    "error_handler",
    "firebase_auth",
    "update_last_online",
    "request_id",
    "request_logger",
]

Skipper = Callable[[RequestContext], bool]
LogFieldExtractor = Callable[[RequestContext], "Mapping[str, Any] | None"]


class AuthProvider(Protocol):
    """Verifies an ID token and returns an object with a ``uid`` attribute."""

    def verify_id_token_and_check_revoked(self, id_token: str) -> Any: ...


class LastOnlineProvider(Protocol):
    """Records when a user was last seen."""

    def update_last_online(self, uid: str) -> None: ...


def error_handler(app: Flask) -> None:
    """Render ``ApiError`` and ``HTTPError`` as JSON with their status codes."""

    @app.errorhandler(ApiError)
    def _api_error(err: ApiError):
        return jsonify(err.to_dict()), err.code

    @app.errorhandler(HTTPError)
    def _http_error(err: HTTPError):
        return jsonify(err.to_dict()), err.code


def firebase_auth(app: Flask, skipper: Skipper, auth: AuthProvider) -> None:
    """Require a bearer token and store the verified user id."""

    @app.before_request
    def _firebase_auth():
        ctx = current_context()
        if skipper(ctx):
            return None
        header = request.headers.get(HEADER_AUTHORIZATION, "").strip()
        if not header:
            raise HTTPError(401, "An authorization header is required")
        parts = header.split(" ")
        if len(parts) != 2:
            raise HTTPError(401, "Invalid authorization token")
        try:
            token = auth.verify_id_token_and_check_revoked(parts[1])
        except Exception:
            raise HTTPError(401, "Unauthorized") from None
        ctx.set(USER_ID_CONTEXT_KEY, token.uid)
        return None


def update_last_online(app: Flask, skipper: Skipper, provider: LastOnlineProvider) -> None:
    """Record the authenticated user's last online time."""

    @app.before_request
    def _update_last_online():
        ctx = current_context()
        if skipper(ctx):
            return None
        uid = ctx.get(USER_ID_CONTEXT_KEY)
        if not isinstance(uid, str):
            raise HTTPError(400, "user id not found")
        try:
            provider.update_last_online(uid)
        except Exception as exc:
            raise HTTPError(500, str(exc)) from exc
        return None


def request_id(app: Flask, skipper: Skipper) -> None:
    """Require a UUID ``X-Request-Id`` header and store it."""

    @app.before_request
    def _request_id():
        ctx = current_context()
        if skipper(ctx):
            return None
        rid = request.headers.get(HEADER_X_REQUEST_ID, "").strip()
        if not rid:
            raise HTTPError(400, f"missing header '{HEADER_X_REQUEST_ID}'")
        try:
            uuid.UUID(rid)
        except ValueError:
            raise HTTPError(400, f"'{HEADER_X_REQUEST_ID}' must be uuid") from None
        ctx.set(REQUEST_ID_CONTEXT_KEY, rid)
        return None


def request_logger(app: Flask, log: Logger, *extractors: LogFieldExtractor) -> None:
    """Log one line per request, at a level chosen from the status code."""

    @app.before_request
    def _start_clock():
        g._tsj_start = time.perf_counter()

    @app.after_request
    def _log_request(response: Response) -> Response:
        started = g.get("_tsj_start", time.perf_counter())
        ctx = current_context()
        fields: dict[str, Any] = {
            "remote_ip": request.access_route[0] if request.access_route else (request.remote_addr or ""),
            "latency": str(timedelta(seconds=time.perf_counter() - started)),
            "host": request.host,
            "request": f"{request.method} {request.full_path.rstrip('?')}",
            "request_uri": request.full_path.rstrip("?"),
            "status": response.status_code,
            "size": response.calculate_content_length() or 0,
            "user_agent": request.user_agent.string,
        }
        rid = ctx.get(REQUEST_ID_CONTEXT_KEY)
        if isinstance(rid, str) and rid:
            fields["request_id"] = rid
        for extract in extractors:
            fields.update(extract(ctx) or {})
        status = response.status_code
        if status >= 500:
            log.error("Server error", **fields)
        elif status >= 400:
            log.warning("Client error", **fields)
        elif status >= 300:
            log.info("Redirection", **fields)
        else:
            log.info("Success", **fields)
        return response