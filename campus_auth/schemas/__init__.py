"""
Pydantic schemas for API request/response validation.
"""

from campus_auth.schemas.auth import (
    AccountResponse,
    AuthResponse,
    LoginRequest,
    RegisterRequest,
)
from campus_auth.schemas.common import ErrorResponse, HealthResponse

__all__ = [
    "AccountResponse",
    "AuthResponse",
    "LoginRequest",
    "RegisterRequest",
    "ErrorResponse",
    "HealthResponse",
]
