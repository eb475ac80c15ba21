"""Request context middleware for observability and rate limiting.

Handles, in one pass: the ``X-Request-ID`` header, request timing, the
structured access log, and per-client token-bucket rate limiting. Login
attempts draw from a separate, smaller bucket so password guessing is
throttled harder than ordinary API use.

The rate limiter is a pure function ``check_rate_limit`` that can be tested
independently.
"""

import logging
import threading
import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..core.config import settings
from ..core.logging_config import request_id_var
from ..exceptions import ErrorCode

logger = logging.getLogger(__name__)

# {client_key: (available_tokens, last_refill_timestamp)}
_rate_buckets: dict[str, tuple[float, float]] = {}
_rate_lock = threading.Lock()

# Stale-entry sweep so rotating client addresses cannot grow the dict forever.
_SWEEP_EVERY = 100
_SWEEP_AGE = 120.0
_calls_since_sweep = 0

_EXEMPT_PATHS = frozenset({"/", "/health", "/docs", "/redoc", "/openapi.json"})
_LOGIN_PATH = "/api/auth/login"


def check_rate_limit(
    bucket: dict[str, tuple[float, float]],
    key: str,
    max_per_minute: int,
    now: Optional[float] = None,
) -> tuple[bool, float]:
    """Take one token for *key* from *bucket*.

    Args:
        bucket: Per-key state, modified in place.
        key: Client identifier.
        max_per_minute: Sustained rate and burst size. ``<= 0`` disables the limit.
        now: Current monotonic time, injectable for tests.

    Returns:
        ``(allowed, retry_after)``; *retry_after* is 0.0 when allowed, otherwise
        the seconds until a token is available.
    """
    global _calls_since_sweep

    if max_per_minute <= 0:
        return True, 0.0
    if now is None:
        now = time.monotonic()

    _calls_since_sweep += 1
    if _calls_since_sweep >= _SWEEP_EVERY:
        _calls_since_sweep = 0
        cutoff = now - _SWEEP_AGE
        for stale in [k for k, (_, ts) in bucket.items() if ts < cutoff]:
            del bucket[stale]

    per_second = max_per_minute / 60.0
    tokens, last = bucket.get(key, (float(max_per_minute), now))
    tokens = min(float(max_per_minute), tokens + (now - last) * per_second)

    if tokens >= 1.0:
        bucket[key] = (tokens - 1.0, now)
        return True, 0.0

    bucket[key] = (tokens, now)
    return False, (1.0 - tokens) / per_second


def _client_key(request: Request) -> str:
    """First ``X-Forwarded-For`` hop when proxied, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _limit_for(path: str) -> tuple[str, int]:
    if path == _LOGIN_PATH:
        return "login", settings.login_rate_limit_per_minute
    return "api", settings.rate_limit_per_minute


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Request id, timing, access log and rate limiting."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request_id_var.set(rid)
        path = request.url.path

        if path not in _EXEMPT_PATHS:
            scope, limit = _limit_for(path)
            key = f"{scope}:{_client_key(request)}"
            with _rate_lock:
                allowed, retry_after = check_rate_limit(_rate_buckets, key, limit)
            if not allowed:
                retry_after = round(retry_after, 1)
                logger.warning(
                    "Rate limit exceeded",
                    extra={"client": key, "path": path, "retry_after": retry_after},
                )
                return JSONResponse(
                    status_code=429,
                    content={
                        "error": ErrorCode.RATE_LIMITED.value,
                        "message": "Too many requests",
                        "details": {"retry_after": retry_after},
                    },
                    headers={"Retry-After": str(int(retry_after) + 1), "X-Request-ID": rid},
                )

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        response.headers["X-Request-ID"] = rid
        response.headers["X-Response-Time"] = f"{duration_ms}ms"

        logger.info(
            f"{request.method} {path} {response.status_code}",
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response
