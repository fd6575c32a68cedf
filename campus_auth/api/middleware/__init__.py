"""
ASGI middleware: request correlation and auth rate limiting.
"""

from campus_auth.api.middleware.rate_limit import RateLimitMiddleware
from campus_auth.api.middleware.request_id import RequestIdMiddleware

__all__ = ["RateLimitMiddleware", "RequestIdMiddleware"]
