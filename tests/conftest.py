"""
Pytest fixtures for auth service tests.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from campus_auth.config import Settings
from campus_auth.database import Database
from campus_auth.kernel.identity.account_store import AccountStore
from campus_auth.kernel.identity.identity_service import IdentityService
from campus_auth.kernel.identity.password import PasswordHasher
from campus_auth.kernel.identity.tokens import TokenIssuer
from campus_auth.main import create_app


TEST_SECRET = "test-secret-key-for-testing-only"

# Minimum bcrypt cost keeps the suite fast
TEST_ROUNDS = 4


class FrozenClock:
    """Controllable clock for token expiry tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_ROUNDS)


@pytest.fixture
def signing_secret() -> str:
    return TEST_SECRET


@pytest.fixture
def token_issuer(clock: FrozenClock) -> TokenIssuer:
    return TokenIssuer(secret_key=TEST_SECRET, clock=clock)


@pytest.fixture
def database_url(tmp_path) -> str:
    # File-based SQLite so every connection sees the same database
    return f"sqlite+aiosqlite:///{tmp_path / 'accounts.db'}"


@pytest_asyncio.fixture
async def database(database_url: str) -> AsyncGenerator[Database, None]:
    db = Database(database_url)
    await db.init()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    async with database.session_maker() as session:
        yield session


@pytest.fixture
def identity_service(
    db_session: AsyncSession,
    hasher: PasswordHasher,
    token_issuer: TokenIssuer,
) -> IdentityService:
    return IdentityService(AccountStore(db_session), hasher, token_issuer)


@pytest.fixture
def test_settings(database_url: str) -> Settings:
    return Settings(
        _env_file=None,
        database_url=database_url,
        secret_key=TEST_SECRET,
        bcrypt_rounds=TEST_ROUNDS,
        rate_limit_enabled=False,
        environment="test",
    )


@pytest_asyncio.fixture
async def client(test_settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """Async client against a fresh app and database."""
    app = create_app(test_settings)
    await app.state.database.init()
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        await app.state.database.close()
