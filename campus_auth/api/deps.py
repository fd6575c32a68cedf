"""
FastAPI dependencies for settings, database sessions and the identity service.

Long-lived collaborators (settings, database, hasher, token issuer) are built
once in ``create_app`` and read from ``app.state``.
"""

from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from campus_auth.api.errors import to_auth_error
from campus_auth.config import Settings
from campus_auth.kernel.identity.account_store import AccountStore
from campus_auth.kernel.identity.identity_service import IdentityService
from campus_auth.kernel.identity.results import AccountView, AuthFailure


# Security scheme
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


AppSettings = Annotated[Settings, Depends(get_app_settings)]


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields database sessions."""
    async with request.app.state.database.session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_identity_service(request: Request, db: DbSession) -> IdentityService:
    return IdentityService(
        store=AccountStore(db),
        hasher=request.app.state.password_hasher,
        token_issuer=request.app.state.token_issuer,
    )


Identity = Annotated[IdentityService, Depends(get_identity_service)]


async def get_current_account(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    identity: Identity,
    settings: AppSettings,
) -> AccountView:
    """Resolve the bearer token to an account or raise 401."""
    token = credentials.credentials if credentials else None
    result = await identity.resolve_token(token)
    if isinstance(result, AuthFailure):
        raise to_auth_error(result, settings.distinguish_credential_errors)
    return result


CurrentAccount = Annotated[AccountView, Depends(get_current_account)]


def get_client_ip(request: Request) -> Optional[str]:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
