"""Request-id middleware, request logging, and JSON error responses."""

from __future__ import annotations

from time import perf_counter
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers, MutableHeaders
from starlette.exceptions import HTTPException as StarletteHTTPException

from leave_approvals.core.config import settings
from leave_approvals.core.errors import LeaveError
from leave_approvals.core.logging import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI
    from starlette.requests import Request
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"
_MAX_REQUEST_ID_LENGTH = 128
_HEALTH_PATHS = frozenset({"/healthz", "/readyz"})


def _incoming_request_id(scope: Scope) -> str | None:
    raw = Headers(scope=scope).get(REQUEST_ID_HEADER)
    if raw is None:
        return None
    cleaned = raw.strip()
    if not cleaned or len(cleaned) > _MAX_REQUEST_ID_LENGTH:
        return None
    return cleaned


def _get_request_id(request: Request) -> str | None:
    request_id = request.scope.get("state", {}).get("request_id")
    if isinstance(request_id, str) and request_id:
        return request_id
    return None


def _json_safe(value: object) -> object:
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, dict):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_json_safe(item) for item in value]
    if value is None or isinstance(value, str | int | float | bool):
        return value
    return str(value)


def _error_payload(*, detail: object, request_id: str | None, **fields: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {"detail": detail}
    payload.update({key: value for key, value in fields.items() if value is not None})
    if request_id is not None:
        payload["request_id"] = request_id
    return payload


def _json_error(
    request: Request,
    *,
    status_code: int,
    detail: object,
    headers: dict[str, str] | None = None,
    **fields: Any,
) -> JSONResponse:
    request_id = _get_request_id(request)
    response_headers = dict(headers or {})
    if request_id is not None:
        response_headers[REQUEST_ID_HEADER] = request_id
    return JSONResponse(
        status_code=status_code,
        content=_error_payload(detail=detail, request_id=request_id, **fields),
        headers=response_headers,
    )


async def _leave_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, LeaveError):
        msg = "Expected LeaveError"
        raise TypeError(msg)
    if exc.retryable or exc.http_status >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.warning(
            "http.leave_error",
            extra={
                "path": request.url.path,
                "code": exc.kind.value,
                "error": exc.message,
                "request_id": _get_request_id(request),
            },
        )
    return _json_error(
        request,
        status_code=exc.http_status,
        detail=exc.message,
        code=exc.kind.value,
        retryable=exc.retryable,
        status=exc.status,
    )


async def _request_validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, RequestValidationError):
        msg = "Expected RequestValidationError"
        raise TypeError(msg)
    return _json_error(
        request,
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=jsonable_encoder(_json_safe(exc.errors())),
    )


async def _response_validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, ResponseValidationError):
        msg = "Expected ResponseValidationError"
        raise TypeError(msg)
    logger.error(
        "http.response_validation_failed",
        extra={"path": request.url.path, "errors": _json_safe(exc.errors())},
    )
    return _json_error(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal Server Error",
    )


async def _http_exception_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    if not isinstance(exc, StarletteHTTPException):
        msg = "Expected StarletteHTTPException"
        raise TypeError(msg)
    return _json_error(
        request,
        status_code=exc.status_code,
        detail=exc.detail,
        headers=dict(exc.headers or {}),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "http.unhandled_exception",
        extra={"path": request.url.path, "request_id": _get_request_id(request)},
        exc_info=exc,
    )
    return _json_error(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal Server Error",
    )


class RequestContextMiddleware:
    """Assign a request id, echo it as a header, and log request completion."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _incoming_request_id(scope) or uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        started = perf_counter()

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = int(message["status"])
                headers = MutableHeaders(scope=message)
                headers[REQUEST_ID_HEADER] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            self._log_request(scope, request_id, status_code, started)

    @staticmethod
    def _log_request(scope: Scope, request_id: str, status_code: int, started: float) -> None:
        path = str(scope.get("path", ""))
        if path in _HEALTH_PATHS and not settings.request_log_include_health:
            return
        duration_ms = round((perf_counter() - started) * 1000, 2)
        extra = {
            "method": scope.get("method"),
            "path": path,
            "status_code": status_code,
            "duration_ms": duration_ms,
            "request_id": request_id,
        }
        logger.info("http.request.completed", extra=extra)
        if duration_ms >= settings.request_log_slow_ms:
            logger.warning(
                "http.request.slow",
                extra={**extra, "slow_threshold_ms": settings.request_log_slow_ms},
            )


def install_error_handling(app: FastAPI) -> None:
    """Register the request-id middleware and all JSON error handlers."""
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(LeaveError, _leave_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_exception_handler)
    app.add_exception_handler(ResponseValidationError, _response_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
