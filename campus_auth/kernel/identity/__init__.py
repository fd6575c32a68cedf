"""
Identity Core - credential hashing, account lookup, tokens and workflows.
"""

from campus_auth.kernel.identity.password import PasswordHasher
from campus_auth.kernel.identity.tokens import TokenIssuer, TokenClaims
from campus_auth.kernel.identity.account_store import (
    AccountStore,
    DuplicateEmailError,
    StoreUnavailableError,
)
from campus_auth.kernel.identity.credentials import (
    CredentialVerifier,
    FederatedIdentity,
    FederatedIdentityVerifier,
    PasswordVerifier,
)
from campus_auth.kernel.identity.results import (
    AccountView,
    AuthErrorCode,
    AuthFailure,
    AuthResult,
    AuthSuccess,
    IssuedToken,
)
from campus_auth.kernel.identity.identity_service import IdentityService

__all__ = [
    "PasswordHasher",
    "TokenIssuer",
    "TokenClaims",
    "AccountStore",
    "DuplicateEmailError",
    "StoreUnavailableError",
    "CredentialVerifier",
    "FederatedIdentity",
    "FederatedIdentityVerifier",
    "PasswordVerifier",
    "AccountView",
    "AuthErrorCode",
    "AuthFailure",
    "AuthResult",
    "AuthSuccess",
    "IssuedToken",
    "IdentityService",
]
