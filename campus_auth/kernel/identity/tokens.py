"""
JWT issuance and verification for account tokens.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Union

from jose import JWTError, jwt
from pydantic import BaseModel

from campus_auth.kernel.identity.results import AuthErrorCode, AuthFailure, IssuedToken
from campus_auth.kernel.models.account import AccountRole

TOKEN_TYPE = "access"
DEFAULT_EXPIRE_DAYS = 7


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenClaims(BaseModel):
    """Decoded and validated token payload."""

    sub: uuid.UUID  # Account ID
    role: AccountRole
    iat: datetime
    exp: datetime


def _invalid(message: str) -> AuthFailure:
    return AuthFailure(code=AuthErrorCode.INVALID_TOKEN, message=message)


class TokenIssuer:
    """
    Signs and checks stateless account tokens.

    The signing secret is supplied by the caller; nothing is read from
    ambient configuration. Verification never touches the account store.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_days: int = DEFAULT_EXPIRE_DAYS,
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret_key:
            raise ValueError("A signing secret is required")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.lifetime = timedelta(days=expire_days)
        self._clock = clock

    def issue(self, account_id: uuid.UUID, role: AccountRole) -> IssuedToken:
        """
        Create a token asserting ``account_id``.

        ``iat`` and ``exp`` are written as fractional NumericDates, so the
        token lives exactly ``lifetime`` from the moment of issue.

        Args:
            account_id: Subject of the token
            role: Role the account was registered under

        Returns:
            IssuedToken with the encoded JWT and its expiry
        """
        now = self._clock()
        expire = now + self.lifetime

        payload = {
            "sub": str(account_id),
            "role": AccountRole(role).value,
            "iat": now.timestamp(),
            "exp": expire.timestamp(),
            "type": TOKEN_TYPE,
        }

        token = jwt.encode(payload, self._secret_key, algorithm=self.algorithm)
        return IssuedToken(
            access_token=token,
            expires_at=expire,
            expires_in=int(self.lifetime.total_seconds()),
        )

    def verify(self, token: str) -> Union[TokenClaims, AuthFailure]:
        """
        Check signature, shape and validity window of a token.

        The window is evaluated against this issuer's clock: a token is
        accepted while ``iat <= now < exp`` and rejected otherwise.

        Returns:
            TokenClaims if valid, an INVALID_TOKEN failure otherwise
        """
        if not token:
            return _invalid("Missing token")

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError:
            return _invalid("Invalid token signature")

        if payload.get("type") != TOKEN_TYPE:
            return _invalid("Unexpected token type")

        try:
            issued_at = float(payload["iat"])
            expires_at = float(payload["exp"])
            claims = TokenClaims(
                sub=uuid.UUID(payload["sub"]),
                role=payload["role"],
                iat=datetime.fromtimestamp(issued_at, tz=timezone.utc),
                exp=datetime.fromtimestamp(expires_at, tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError, OverflowError, OSError):
            return _invalid("Malformed token payload")

        # Compare the raw NumericDates; datetime round-trips can drift a microsecond
        now = self._clock().timestamp()
        if now < issued_at:
            return _invalid("Token is not yet valid")
        if now >= expires_at:
            return _invalid("Token has expired")

        return claims
