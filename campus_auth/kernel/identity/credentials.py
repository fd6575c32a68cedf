"""
Credential verifiers: the ways an account can prove who it is.

A password login and a login vouched for by an external identity provider
both end at the same token issuance step; they differ only in how the
account's claim is checked.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel

from campus_auth.kernel.identity.account_store import normalize_email
from campus_auth.kernel.identity.password import PasswordHasher
from campus_auth.kernel.identity.results import AuthErrorCode, AuthFailure
from campus_auth.kernel.models.account import Account
from campus_auth.logging_config import get_logger

logger = get_logger(__name__)

INVALID_PASSWORD_MESSAGE = "Invalid password"


class FederatedIdentity(BaseModel):
    """Identity asserted by an OAuth-style provider after its own checks."""

    provider: str  # e.g. "google"
    subject: str  # Provider's stable user ID
    email: str
    email_verified: bool = False


class CredentialVerifier(ABC):
    """Checks a presented credential against a stored account."""

    method: str = "unknown"

    @abstractmethod
    async def verify(self, account: Account) -> Optional[AuthFailure]:
        """Return None if the credential holds, otherwise the failure."""


class PasswordVerifier(CredentialVerifier):
    """Checks a plaintext password against the stored bcrypt digest."""

    method = "password"

    def __init__(self, password: str, hasher: PasswordHasher):
        self._password = password
        self._hasher = hasher

    async def verify(self, account: Account) -> Optional[AuthFailure]:
        try:
            matched = await self._hasher.verify_async(self._password, account.password_hash)
        except ValueError:
            # Stored digest is corrupt; treat as a rejection rather than a 500
            logger.error(
                "Stored password hash is malformed",
                extra={"account_id": str(account.id)},
            )
            matched = False

        if not matched:
            return AuthFailure(code=AuthErrorCode.INVALID_PASSWORD, message=INVALID_PASSWORD_MESSAGE)
        return None


class FederatedIdentityVerifier(CredentialVerifier):
    """
    Accepts an already-authenticated identity in place of a password.

    The provider has done the authentication; this only checks that the
    asserted, verified email is the account's email.
    """

    method = "federated"

    def __init__(self, identity: FederatedIdentity):
        self.identity = identity

    async def verify(self, account: Account) -> Optional[AuthFailure]:
        if not self.identity.email_verified:
            return AuthFailure(
                code=AuthErrorCode.INVALID_PASSWORD,
                message="Provider has not verified this email",
            )
        if normalize_email(self.identity.email) != account.email:
            return AuthFailure(
                code=AuthErrorCode.INVALID_PASSWORD,
                message="Provider identity does not match this account",
            )
        return None
