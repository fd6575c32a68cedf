"""
Request correlation and auth access logging.

Every request gets an ID (the client's X-Request-ID when it is sane, a fresh
UUID otherwise) that is echoed back and bound to the logging context. Calls
under the auth prefix are also logged with their route template, method,
status and duration, so login bursts and slow hashing show up in one place.
"""

import re
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from campus_auth.kernel.identity.password import DEFAULT_BCRYPT_ROUNDS
from campus_auth.logging_config import get_logger, request_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Client IDs end up in every log line of the request
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

# One hash or verify at the default cost stays well under this
BASE_SLOW_REQUEST_MS = 1000.0


def slow_request_threshold_ms(bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS) -> float:
    """
    Duration above which an auth request is logged as slow.

    Each extra bcrypt round doubles the cost of a hash, so the threshold
    doubles with it. Costs below the default keep the base threshold.
    """
    return BASE_SLOW_REQUEST_MS * 2 ** max(0, bcrypt_rounds - DEFAULT_BCRYPT_ROUNDS)


def _accept_request_id(incoming: Optional[str]) -> str:
    if incoming and _REQUEST_ID_RE.match(incoming):
        return incoming
    return str(uuid.uuid4())


def _route_template(request: Request) -> str:
    # Set by the router once a route matched; absent for 404s and middleware replies
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assign a request ID and log calls to the auth endpoints."""

    def __init__(
        self,
        app: ASGIApp,
        auth_prefix: str = "/api/auth",
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ):
        super().__init__(app)
        self.auth_prefix = auth_prefix
        self.slow_ms = slow_request_threshold_ms(bcrypt_rounds)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _accept_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        try:
            start = time.perf_counter()
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 1)

            response.headers[REQUEST_ID_HEADER] = request_id

            if request.url.path.startswith(self.auth_prefix):
                extra = {
                    "route": _route_template(request),
                    "method": request.method,
                    "status": response.status_code,
                    "duration_ms": duration_ms,
                }
                if duration_ms > self.slow_ms:
                    logger.warning("Slow auth request", extra={**extra, "threshold_ms": self.slow_ms})
                else:
                    logger.info("Auth request", extra=extra)

            return response
        finally:
            request_id_var.reset(token)
