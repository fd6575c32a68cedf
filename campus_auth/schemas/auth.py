"""
Authentication schemas.

Request fields are optional so that missing values reach the workflow and
are reported as ``invalid_input`` rather than a framework validation error.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from campus_auth.kernel.identity.results import AuthSuccess


class RegisterRequest(BaseModel):
    """Account registration request."""
    
    email: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = Field(None, max_length=128)
    role: Optional[str] = None


class LoginRequest(BaseModel):
    """Account login request."""
    
    email: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = Field(None, max_length=128)
    role: Optional[str] = None


class AccountResponse(BaseModel):
    """Account as exposed to clients."""
    
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    role: str
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    """
    Successful registration or login.

    The account is serialized under both ``account`` and ``user``; the
    CampusSync front-end stores ``user`` after login.
    """
    
    message: str
    role: str
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    account: AccountResponse

    @computed_field  # type: ignore[prop-decorator]
    @property
    def user(self) -> AccountResponse:
        return self.account

    @classmethod
    def from_result(cls, result: AuthSuccess, message: str) -> "AuthResponse":
        return cls(
            message=message,
            role=result.role.value,
            token=result.token.access_token,
            token_type=result.token.token_type,
            expires_at=result.token.expires_at,
            account=AccountResponse(
                id=result.account.id,
                email=result.account.email,
                role=result.account.role.value,
                created_at=result.account.created_at,
            ),
        )
