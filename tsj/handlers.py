"""Helpers that bind, validate and run request handlers."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from flask import Response, jsonify, request
from pydantic import BaseModel, ValidationError

from tsj.context import RequestContext, current_context
from tsj.errors import ApiError
from tsj.logger import Logger, get_logger
from tsj.responses import Result
from tsj.validation import RestValidator, default_rest_validator

__all__ = [
    "REQUEST_OBJECT_CONTEXT_KEY",
    "RESPONSE_STATUS_CONTEXT_KEY",
    "call",
    "call_any",
    "call_sse",
    "wrapper",
    "wrapper_any",
    "wrapper_sse",
    "rest_log_field_extractor",
]

REQUEST_OBJECT_CONTEXT_KEY = "service_requestObject"
RESPONSE_STATUS_CONTEXT_KEY = "service_responseStatus"

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


def _call(ctx: RequestContext, req: Any, name: str, delegate: Callable[..., T]) -> T:
    log = get_logger(name)
    log.with_fields(request_id=ctx.request_id())
    try:
        return delegate(log, ctx, req)
    finally:
        log.info("completed")


def call(
    ctx: RequestContext, req: Any, name: str,
    delegate: Callable[[Logger, RequestContext, Any], Result],
) -> Result:
    """Run ``delegate`` with a logger named ``name`` tagged with the request id."""
    return _call(ctx, req, name, delegate)


def call_any(
    ctx: RequestContext, req: Any, name: str,
    delegate: Callable[[Logger, RequestContext, Any], Any],
) -> Any:
    """Like ``call`` for delegates returning any JSON value."""
    return _call(ctx, req, name, delegate)


def call_sse(
    ctx: RequestContext, req: Any, name: str,
    delegate: Callable[[Logger, RequestContext, Any], Any],
) -> Any:
    """Like ``call`` for streaming delegates."""
    return _call(ctx, req, name, delegate)


def _now() -> str:
    return datetime.now(timezone.utc).astimezone().isoformat(timespec="seconds")


def _bind_data(path_args: dict[str, Any]) -> dict[str, Any]:
    data: dict[str, Any] = dict(path_args)
    if request.method in ("GET", "DELETE", "HEAD"):
        data.update(request.args.to_dict())
    if request.get_data(cache=True):
        body = request.get_json(force=True, silent=False)
        if not isinstance(body, dict):
            raise ValueError("request body must be a JSON object")
        data.update(body)
    return data


def _prepare(
    request_model: type[M], wrapped: Callable[..., Any], validator: RestValidator,
    log: Logger, path_args: dict[str, Any],
) -> tuple[RequestContext, M]:
    ctx = current_context()
    log.info(
        "request begin", request_id=ctx.request_id(), at=_now(),
        path=request.full_path.rstrip("?"), handler=getattr(wrapped, "__qualname__", repr(wrapped)),
    )
    try:
        data = _bind_data(path_args)
    except Exception as exc:
        log.error("fail to bind request", request_uri=request.full_path, err=str(exc))
        raise ApiError(400, "invalid request", -40001) from None
    try:
        req = validator.validate(request_model, data)
    except ValidationError as exc:
        log.error("fail to validate request", request_uri=request.full_path, request_object=data, err=str(exc))
        raise ApiError(400, "invalid request", -40002) from None
    ctx.set(REQUEST_OBJECT_CONTEXT_KEY, req)
    return ctx, req


def _make_view(request_model: type[M], wrapped: Callable[..., Any], finish: Callable[..., Any]):
    validator = default_rest_validator()

    def view(**path_args: Any):
        log = get_logger("Wrapper")
        ctx, req = _prepare(request_model, wrapped, validator, log, path_args)
        try:
            result = wrapped(ctx, req)
        except Exception as exc:
            log.error("request end with error", request_id=ctx.request_id(), at=_now(), err=str(exc))
            raise
        return finish(log, ctx, result)

    view.__name__ = getattr(wrapped, "__name__", "view")
    view.__qualname__ = getattr(wrapped, "__qualname__", view.__name__)
    return view


def _json_finish(log: Logger, ctx: RequestContext, result: Any):
    status = ctx.get(RESPONSE_STATUS_CONTEXT_KEY) or 200
    log.info("request end", request_id=ctx.request_id(), at=_now(), status=status)
    body = result.to_dict() if isinstance(result, Result) else result
    if isinstance(body, BaseModel):
        body = body.model_dump(mode="json")
    return jsonify(body), status


def _sse_finish(log: Logger, ctx: RequestContext, result: Any):
    log.info("request end", request_id=ctx.request_id(), at=_now(), status=200)
    return result if result is not None else Response(status=200)


def wrapper(request_model: type[M], wrapped: Callable[[RequestContext, M], Result]):
    """Build a Flask view that binds, validates and renders a ``Result``."""
    return _make_view(request_model, wrapped, _json_finish)


def wrapper_any(request_model: type[M], wrapped: Callable[[RequestContext, M], Any]):
    """Build a Flask view that renders any JSON-serialisable value."""
    return _make_view(request_model, wrapped, _json_finish)


def wrapper_sse(request_model: type[M], wrapped: Callable[[RequestContext, M], Any]):
    """Build a Flask view whose handler produces its own (streaming) response."""
    return _make_view(request_model, wrapped, _sse_finish)


def rest_log_field_extractor(ctx: RequestContext) -> dict[str, str]:
    """Return the bound request object as a JSON log field, if there is one."""
    req = ctx.get(REQUEST_OBJECT_CONTEXT_KEY)
    if req is None:
        return {}
    try:
        text = req.model_dump_json() if isinstance(req, BaseModel) else json.dumps(req)
    except Exception as exc:
        text = f"fail to parse reqObject as string: {exc}"
    return {"requestObject": text}