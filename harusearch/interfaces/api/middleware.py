"""
API Middleware - Request/response processing.

Provides:
- Request context (request id, latency, access log)
- Mapping of HaruSearchError codes to HTTP responses
- Rate limiting for search-as-you-type traffic
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from harusearch.config.errors import ErrorCode, HaruSearchError

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.SECURITY_UNAUTHORIZED: 401,
    ErrorCode.SECURITY_FORBIDDEN: 403,
    ErrorCode.SEARCH_ACCESS_DENIED: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.STORAGE_CONFLICT: 409,
    ErrorCode.SECURITY_RATE_LIMITED: 429,
    ErrorCode.STORAGE_CONNECTION_FAILED: 503,
    ErrorCode.STORAGE_READ_FAILED: 503,
    ErrorCode.STORAGE_WRITE_FAILED: 503,
    ErrorCode.STORAGE_TIMEOUT: 503,
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def _error_response(
    request: Request,
    status_code: int,
    error: dict[str, Any],
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Uniform error body: ``{"error": {...}, "request_id": ...}``."""
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "request_id": _request_id(request)},
        headers=headers,
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log it with its latency."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        started = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request.state.request_id
        response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"

        logger.info(
            "%s %s status=%d latency_ms=%.2f request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request.state.request_id,
        )
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn domain errors into structured JSON; anything else becomes a 500."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        try:
            return await call_next(request)
        except HaruSearchError as e:
            status_code = _STATUS_BY_CODE.get(e.code, 500)
            log = logger.warning if status_code < 500 else logger.error
            log(
                "%s on %s: %s request_id=%s details=%s",
                e.code.value,
                request.url.path,
                e.message,
                _request_id(request),
                e.details,
            )
            return _error_response(request, status_code, e.to_dict())
        except Exception:
            logger.exception("Unhandled error on %s request_id=%s", request.url.path, _request_id(request))
            return _error_response(
                request,
                500,
                {"code": ErrorCode.INTERNAL_ERROR.value, "message": "Internal server error", "details": {}},
            )


@dataclass
class _Window:
    started: int = 0
    remaining: int = 0


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Fixed-window rate limiting for search traffic.

    Search-as-you-type clients debounce on their side; this is the server's
    bound on what a single client can still send. Windows are keyed by bearer
    token when present, client IP otherwise. Windows are dropped once their
    minute has passed.
    """

    def __init__(
        self,
        app: ASGIApp,
        requests_per_minute: int = 60,
        exempt_paths: tuple[str, ...] = ("/health",),
    ) -> None:
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.exempt_paths = exempt_paths
        self._windows: dict[str, _Window] = {}
        self._minute = 0

    def _client_key(self, request: Request) -> str:
        authorization = request.headers.get("Authorization")
        if authorization:
            return f"token:{hash(authorization)}"
        return f"ip:{request.client.host if request.client else 'unknown'}"

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        now = time.time()
        minute = int(now // 60)
        if minute != self._minute:
            # Every stored window belongs to an earlier minute.
            self._minute = minute
            self._windows.clear()

        key = self._client_key(request)
        window = self._windows.setdefault(key, _Window())

        if window.started != minute:
            window.started = minute
            window.remaining = self.requests_per_minute

        if window.remaining <= 0:
            retry_after = 60 - int(now % 60)
            logger.warning("Rate limit exceeded for %s request_id=%s", key, _request_id(request))
            return _error_response(
                request,
                429,
                {
                    "code": ErrorCode.SECURITY_RATE_LIMITED.value,
                    "message": f"Too many requests. Please retry after {retry_after} seconds.",
                    "details": {"retry_after": retry_after},
                },
                headers={"Retry-After": str(retry_after)},
            )

        window.remaining -= 1
        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(window.remaining)
        return response
