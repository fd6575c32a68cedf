"""
Account store adapter over an async SQLAlchemy session.
"""

import uuid
from typing import Optional

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_auth.kernel.models.account import Account, AccountRole, PASSWORD_PROVIDER
from campus_auth.logging_config import get_logger

logger = get_logger(__name__)

# Raised by drivers when the database cannot be reached
_CONNECTIVITY_ERRORS = (OperationalError, InterfaceError, OSError, TimeoutError)


class DuplicateEmailError(Exception):
    """An account with this email already exists."""

    def __init__(self, email: str):
        super().__init__(f"Email already registered: {email}")
        self.email = email


class StoreUnavailableError(Exception):
    """The account database could not be reached."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AccountStore:
    """
    Lookup and insertion of accounts by email.

    Email uniqueness is owned by the unique index on ``accounts.email``;
    callers that want to skip work for a taken email read first.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _scalar(self, query) -> Optional[Account]:
        try:
            result = await self.session.execute(query)
        except _CONNECTIVITY_ERRORS as exc:
            logger.error("Account store unavailable: %s", exc, extra={"error": type(exc).__name__})
            raise StoreUnavailableError(str(exc)) from exc
        return result.scalar_one_or_none()

    async def find_by_id(self, account_id: uuid.UUID) -> Optional[Account]:
        """Get an account by ID."""
        return await self._scalar(select(Account).where(Account.id == account_id))

    async def find_by_email(self, email: str) -> Optional[Account]:
        """Get an account by email, whatever its role."""
        query = select(Account).where(Account.email == normalize_email(email))
        return await self._scalar(query)

    async def find_by_email_and_role(
        self,
        email: str,
        role: AccountRole,
    ) -> Optional[Account]:
        """Get an account only if it was registered under ``role``."""
        query = select(Account).where(
            and_(
                Account.email == normalize_email(email),
                Account.role == AccountRole(role).value,
            )
        )
        return await self._scalar(query)

    async def insert(
        self,
        email: str,
        password_hash: str,
        role: AccountRole,
        auth_provider: str = PASSWORD_PROVIDER,
    ) -> Account:
        """
        Create and commit a new account.

        The row is committed before returning so no token can be issued for
        an account that was never persisted.

        Raises:
            DuplicateEmailError: If the email is taken, including when a
                concurrent insert wins the race on the unique index
            StoreUnavailableError: If the database cannot be reached
        """
        email = normalize_email(email)
        account = Account(
            email=email,
            password_hash=password_hash,
            role=AccountRole(role).value,
            auth_provider=auth_provider,
        )
        self.session.add(account)

        try:
            await self.session.flush()
            await self.session.commit()
            # Load server-side timestamps
            await self.session.refresh(account)
        except IntegrityError as exc:
            await self.session.rollback()
            logger.info("Unique index rejected registration")
            raise DuplicateEmailError(email) from exc
        except _CONNECTIVITY_ERRORS as exc:
            await self.session.rollback()
            logger.error("Account store unavailable: %s", exc, extra={"error": type(exc).__name__})
            raise StoreUnavailableError(str(exc)) from exc

        return account
