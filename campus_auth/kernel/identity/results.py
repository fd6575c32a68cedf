"""
Typed outcomes of the credential workflows.

Failures are returned as values; the HTTP layer maps each code to a status.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict

from campus_auth.kernel.models.account import AccountRole


class AuthErrorCode(str, Enum):
    """Failure taxonomy for registration, login and token checks."""
    INVALID_INPUT = "invalid_input"
    DUPLICATE_EMAIL = "duplicate_email"
    NOT_FOUND_FOR_ROLE = "not_found_for_role"
    INVALID_PASSWORD = "invalid_password"
    STORE_UNAVAILABLE = "store_unavailable"
    INVALID_TOKEN = "invalid_token"


class AccountView(BaseModel):
    """Outward representation of an account. Never carries the hash."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    role: AccountRole
    created_at: Optional[datetime] = None


class IssuedToken(BaseModel):
    """A signed bearer token and its expiry."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    expires_in: int  # Seconds until expiry at issue time


@dataclass(frozen=True)
class AuthFailure:
    """A rejected request."""
    code: AuthErrorCode
    message: str
    field: Optional[str] = None

    @property
    def retryable(self) -> bool:
        """Only infrastructure faults are worth retrying."""
        return self.code == AuthErrorCode.STORE_UNAVAILABLE


@dataclass(frozen=True)
class AuthSuccess:
    """A registered or authenticated account with its token."""
    role: AccountRole
    account: AccountView
    token: IssuedToken


AuthResult = Union[AuthSuccess, AuthFailure]
