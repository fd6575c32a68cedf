"""
Identity service: registration and authentication workflows.
"""

import secrets
from typing import Optional, Union

from email_validator import EmailNotValidError, validate_email

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
from campus_auth.kernel.identity.password import PasswordHasher
from campus_auth.kernel.identity.results import (
    AccountView,
    AuthErrorCode,
    AuthFailure,
    AuthResult,
    AuthSuccess,
)
from campus_auth.kernel.identity.tokens import TokenIssuer
from campus_auth.kernel.models.account import Account, AccountRole, PASSWORD_PROVIDER
from campus_auth.logging_config import get_logger

logger = get_logger(__name__)

ALL_FIELDS_REQUIRED = "All fields are required"
NOT_FOUND_FOR_ROLE_MESSAGE = "User not found for this role"
DUPLICATE_EMAIL_MESSAGE = "User already exists"
STORE_UNAVAILABLE_MESSAGE = "Account store is temporarily unavailable"


def _invalid_input(message: str, field: Optional[str] = None) -> AuthFailure:
    return AuthFailure(code=AuthErrorCode.INVALID_INPUT, message=message, field=field)


def _store_unavailable() -> AuthFailure:
    return AuthFailure(code=AuthErrorCode.STORE_UNAVAILABLE, message=STORE_UNAVAILABLE_MESSAGE)


def _missing_field(**fields: Optional[str]) -> Optional[str]:
    """Name of the first absent or blank field."""
    for name, value in fields.items():
        if value is None or not str(value).strip():
            return name
    return None


def _email_domain(email: str) -> str:
    return email.rsplit("@", 1)[-1].lower()


class IdentityService:
    """
    Service for account identity operations.

    Each call is independent; the only shared state is the injected hasher
    and token issuer, both immutable after construction.
    """

    def __init__(
        self,
        store: AccountStore,
        hasher: PasswordHasher,
        token_issuer: TokenIssuer,
    ):
        self.store = store
        self.hasher = hasher
        self.token_issuer = token_issuer

    def _success(self, account: Account) -> AuthSuccess:
        role = account.account_role
        return AuthSuccess(
            role=role,
            account=AccountView.model_validate(account),
            token=self.token_issuer.issue(account.id, role),
        )

    async def register(
        self,
        email: Optional[str],
        password: Optional[str],
        role: Optional[str],
    ) -> AuthResult:
        """
        Register a new account and issue its first token.

        Args:
            email: Email address, unique across all roles
            password: Plain text password
            role: One of student, teacher, admin, parent

        Returns:
            AuthSuccess, or AuthFailure with INVALID_INPUT, DUPLICATE_EMAIL
            or STORE_UNAVAILABLE
        """
        missing = _missing_field(email=email, password=password, role=role)
        if missing:
            return _invalid_input(ALL_FIELDS_REQUIRED, field=missing)

        account_role = AccountRole.parse(role)
        if account_role is None:
            return _invalid_input("Invalid role", field="role")

        try:
            validate_email(email.strip(), check_deliverability=False)
        except EmailNotValidError as exc:
            return _invalid_input(str(exc), field="email")

        return await self._create_account(
            email=email,
            role=account_role,
            password=password,
            auth_provider=PASSWORD_PROVIDER,
        )

    async def register_federated(
        self,
        identity: FederatedIdentity,
        role: Optional[str],
    ) -> AuthResult:
        """
        Register an account from an identity a provider has already verified.

        The account gets a random, never-disclosed password so that password
        login is impossible until a reset flow exists.
        """
        account_role = AccountRole.parse(role)
        if account_role is None:
            return _invalid_input("Invalid role", field="role")
        if not identity.email_verified:
            return _invalid_input("Provider has not verified this email", field="email")

        try:
            validate_email(identity.email.strip(), check_deliverability=False)
        except EmailNotValidError as exc:
            return _invalid_input(str(exc), field="email")

        return await self._create_account(
            email=identity.email,
            role=account_role,
            password=secrets.token_urlsafe(32),
            auth_provider=identity.provider,
        )

    async def _create_account(
        self,
        email: str,
        role: AccountRole,
        password: str,
        auth_provider: str,
    ) -> AuthResult:
        try:
            # Read first so a taken email costs no bcrypt work; the unique
            # index still decides races
            if await self.store.find_by_email(email) is not None:
                logger.info(
                    "Registration rejected: email taken",
                    extra={"email_domain": _email_domain(email), "role": role.value},
                )
                return AuthFailure(code=AuthErrorCode.DUPLICATE_EMAIL, message=DUPLICATE_EMAIL_MESSAGE)

            password_hash = await self.hasher.hash_async(password)
            account = await self.store.insert(
                email=email,
                password_hash=password_hash,
                role=role,
                auth_provider=auth_provider,
            )
        except DuplicateEmailError:
            return AuthFailure(code=AuthErrorCode.DUPLICATE_EMAIL, message=DUPLICATE_EMAIL_MESSAGE)
        except StoreUnavailableError:
            return _store_unavailable()

        logger.info(
            "Account registered",
            extra={"account_id": str(account.id), "role": role.value, "provider": auth_provider},
        )
        return self._success(account)

    async def authenticate(
        self,
        email: Optional[str],
        password: Optional[str],
        role: Optional[str],
    ) -> AuthResult:
        """
        Authenticate with email, password and the role being logged into.

        Returns:
            AuthSuccess, or AuthFailure with INVALID_INPUT, NOT_FOUND_FOR_ROLE,
            INVALID_PASSWORD or STORE_UNAVAILABLE
        """
        missing = _missing_field(email=email, password=password, role=role)
        if missing:
            return _invalid_input(ALL_FIELDS_REQUIRED, field=missing)

        return await self.authenticate_with(
            email=email,
            role=role,
            verifier=PasswordVerifier(password, self.hasher),
        )

    async def authenticate_federated(
        self,
        identity: FederatedIdentity,
        role: Optional[str],
    ) -> AuthResult:
        """Log in with an identity a provider has already authenticated."""
        return await self.authenticate_with(
            email=identity.email,
            role=role,
            verifier=FederatedIdentityVerifier(identity),
        )

    async def authenticate_with(
        self,
        email: Optional[str],
        role: Optional[str],
        verifier: CredentialVerifier,
    ) -> AuthResult:
        """
        Look up the account for ``(email, role)`` and check the credential.

        An email registered under a different role is reported exactly like
        an unknown email.
        """
        missing = _missing_field(email=email, role=role)
        if missing:
            return _invalid_input(ALL_FIELDS_REQUIRED, field=missing)

        not_found = AuthFailure(code=AuthErrorCode.NOT_FOUND_FOR_ROLE, message=NOT_FOUND_FOR_ROLE_MESSAGE)
        account_role = AccountRole.parse(role)
        if account_role is None:
            return not_found

        try:
            account = await self.store.find_by_email_and_role(email, account_role)
        except StoreUnavailableError:
            return _store_unavailable()

        if account is None:
            logger.info(
                "Login rejected: no account for role",
                extra={"email_domain": _email_domain(email), "role": account_role.value},
            )
            return not_found

        failure = await verifier.verify(account)
        if failure is not None:
            logger.warning(
                "Login rejected: credential mismatch",
                extra={"account_id": str(account.id), "method": verifier.method},
            )
            return failure

        logger.info(
            "Account authenticated",
            extra={"account_id": str(account.id), "role": account_role.value, "method": verifier.method},
        )
        return self._success(account)

    async def resolve_token(self, token: Optional[str]) -> Union[AccountView, AuthFailure]:
        """
        Verify a bearer token and load the account it names.

        Used by downstream resource checks; the token itself proves nothing
        about whether the account still exists.
        """
        claims = self.token_issuer.verify(token or "")
        if isinstance(claims, AuthFailure):
            return claims

        try:
            account = await self.store.find_by_id(claims.sub)
        except StoreUnavailableError:
            return _store_unavailable()

        if account is None:
            return AuthFailure(code=AuthErrorCode.INVALID_TOKEN, message="Account no longer exists")
        return AccountView.model_validate(account)
