"""
Rate limiting for credential endpoints, per client IP.

Slows online password guessing against register/login. In-memory and
per-process; a multi-worker deployment needs a shared store.
"""

import time
from typing import Callable, Dict, Tuple

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from campus_auth.logging_config import get_logger

logger = get_logger(__name__)

WINDOW_SECONDS = 60


def _get_client_ip(request: Request) -> str:
    """Get client IP from request (X-Forwarded-For or direct)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class InMemoryRateLimitStore:
    """Fixed-window in-memory store. Key -> (count, window_start_ts)."""

    def __init__(self, window_seconds: int = WINDOW_SECONDS):
        self.window_seconds = window_seconds
        self._data: Dict[str, Tuple[int, float]] = {}

    def check_and_incr(self, identifier: str, limit: int) -> bool:
        """Returns True if under limit (and increments). False if over limit (no increment)."""
        now = time.monotonic()
        entry = self._data.get(identifier)
        if entry is None or now - entry[1] >= self.window_seconds:
            self._data[identifier] = (1, now)
            return True
        count, start = entry
        if count >= limit:
            return False
        self._data[identifier] = (count + 1, start)
        return True

    def cleanup_old(self) -> None:
        """Drop expired windows to avoid unbounded growth."""
        now = time.monotonic()
        expired = [k for k, (_, start) in self._data.items() if now - start >= self.window_seconds]
        for k in expired:
            self._data.pop(k, None)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Limit POSTs under ``path_prefix`` to ``limit`` per IP per minute."""

    def __init__(self, app: ASGIApp, path_prefix: str, limit: int, enabled: bool = True):
        super().__init__(app)
        self.path_prefix = path_prefix
        self.limit = limit
        self.enabled = enabled
        self.store = InMemoryRateLimitStore()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.enabled or request.method != "POST":
            return await call_next(request)
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        self.store.cleanup_old()
        client_ip = _get_client_ip(request)
        if not self.store.check_and_incr(client_ip, self.limit):
            logger.warning("Auth rate limit exceeded", extra={"client_ip": client_ip})
            return Response(
                content=(
                    '{"detail":"Too many requests. Please try again later.",'
                    '"message":"Too many requests. Please try again later.",'
                    '"code":"rate_limited"}'
                ),
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                media_type="application/json",
                headers={"Retry-After": str(WINDOW_SECONDS)},
            )
        return await call_next(request)
