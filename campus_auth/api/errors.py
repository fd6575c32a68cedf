"""
Mapping of workflow failures onto HTTP responses.
"""

from typing import Dict, Optional

from fastapi import status

from campus_auth.kernel.identity.results import AuthErrorCode, AuthFailure
from campus_auth.schemas.common import ErrorResponse

GENERIC_CREDENTIALS_CODE = "invalid_credentials"
GENERIC_CREDENTIALS_MESSAGE = "Invalid email, password or role"

STATUS_BY_CODE: Dict[AuthErrorCode, int] = {
    AuthErrorCode.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    AuthErrorCode.DUPLICATE_EMAIL: status.HTTP_409_CONFLICT,
    AuthErrorCode.NOT_FOUND_FOR_ROLE: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.INVALID_PASSWORD: status.HTTP_401_UNAUTHORIZED,
    AuthErrorCode.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    AuthErrorCode.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
}

_CREDENTIAL_CODES = (AuthErrorCode.NOT_FOUND_FOR_ROLE, AuthErrorCode.INVALID_PASSWORD)


class AuthError(Exception):
    """Raised by route handlers to return a failure body."""

    def __init__(
        self,
        status_code: int,
        body: ErrorResponse,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(body.detail)
        self.status_code = status_code
        self.body = body
        self.headers = headers or {}


def to_auth_error(failure: AuthFailure, distinguish_credential_errors: bool = False) -> AuthError:
    """
    Build the HTTP error for a failure.

    Unless ``distinguish_credential_errors`` is set, an unknown email and a
    wrong password produce the same response so callers cannot learn which
    emails are registered.
    """
    status_code = STATUS_BY_CODE[failure.code]
    headers: Dict[str, str] = {}

    if failure.code in _CREDENTIAL_CODES and not distinguish_credential_errors:
        body = ErrorResponse(detail=GENERIC_CREDENTIALS_MESSAGE, code=GENERIC_CREDENTIALS_CODE)
    else:
        body = ErrorResponse(detail=failure.message, code=failure.code.value, field=failure.field)

    if failure.code == AuthErrorCode.INVALID_TOKEN:
        headers["WWW-Authenticate"] = "Bearer"
    elif failure.retryable:
        headers["Retry-After"] = "5"

    return AuthError(status_code, body, headers)
