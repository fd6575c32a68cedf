"""Unit tests for the registration and authentication workflows."""

import asyncio
import uuid

import pytest
from sqlalchemy import func, select

from campus_auth.kernel.identity.account_store import AccountStore
from campus_auth.kernel.identity.credentials import FederatedIdentity
from campus_auth.kernel.identity.identity_service import IdentityService
from campus_auth.kernel.identity.results import AuthErrorCode, AuthFailure, AuthSuccess
from campus_auth.kernel.identity.tokens import TokenClaims
from campus_auth.kernel.models.account import Account, AccountRole


ROLES = [role.value for role in AccountRole]


class TestRegistration:
    """Tests for IdentityService.register."""

    @pytest.mark.asyncio
    async def test_register_returns_account_and_token(self, identity_service: IdentityService):
        result = await identity_service.register("a@x.com", "pw1", "student")

        assert isinstance(result, AuthSuccess)
        assert result.role == AccountRole.STUDENT
        assert result.account.email == "a@x.com"
        assert result.account.role == AccountRole.STUDENT
        assert result.account.created_at is not None
        assert result.token.access_token
        assert "password_hash" not in result.account.model_dump()

    @pytest.mark.asyncio
    async def test_token_subject_is_account_id(self, identity_service: IdentityService):
        result = await identity_service.register("sub@example.com", "pw1", "teacher")

        claims = identity_service.token_issuer.verify(result.token.access_token)

        assert isinstance(claims, TokenClaims)
        assert claims.sub == result.account.id

    @pytest.mark.asyncio
    async def test_password_stored_hashed(self, identity_service: IdentityService, db_session):
        await identity_service.register("hash@example.com", "pw1", "parent")

        account = await AccountStore(db_session).find_by_email("hash@example.com")

        assert account.password_hash != "pw1"
        assert account.password_hash.startswith("$2b$")

    @pytest.mark.asyncio
    async def test_email_normalized(self, identity_service: IdentityService):
        result = await identity_service.register("  Mixed.Case@Example.COM ", "pw1", "student")

        assert result.account.email == "mixed.case@example.com"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email,password,role,field",
        [
            (None, "pw1", "student", "email"),
            ("a@x.com", None, "student", "password"),
            ("a@x.com", "pw1", None, "role"),
            ("   ", "pw1", "student", "email"),
            ("a@x.com", "", "student", "password"),
        ],
    )
    async def test_missing_fields(self, identity_service, email, password, role, field):
        result = await identity_service.register(email, password, role)

        assert isinstance(result, AuthFailure)
        assert result.code == AuthErrorCode.INVALID_INPUT
        assert result.field == field
        assert result.message == "All fields are required"

    @pytest.mark.asyncio
    async def test_unknown_role(self, identity_service: IdentityService):
        result = await identity_service.register("a@x.com", "pw1", "principal")

        assert isinstance(result, AuthFailure)
        assert result.code == AuthErrorCode.INVALID_INPUT
        assert result.field == "role"

    @pytest.mark.asyncio
    async def test_malformed_email(self, identity_service: IdentityService):
        result = await identity_service.register("not-an-email", "pw1", "student")

        assert isinstance(result, AuthFailure)
        assert result.code == AuthErrorCode.INVALID_INPUT
        assert result.field == "email"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("second_role", ROLES)
    async def test_duplicate_email_any_role(self, identity_service: IdentityService, second_role: str):
        await identity_service.register("dup@example.com", "pw1", "student")

        result = await identity_service.register("DUP@example.com", "pw2", second_role)

        assert isinstance(result, AuthFailure)
        assert result.code == AuthErrorCode.DUPLICATE_EMAIL
        assert not result.retryable

    @pytest.mark.asyncio
    async def test_taken_email_skips_hashing(self, identity_service: IdentityService, monkeypatch):
        await identity_service.register("taken@example.com", "pw1", "student")
        calls = []

        async def _hash(password):
            calls.append(password)
            return "$2b$04$unused"

        monkeypatch.setattr(identity_service.hasher, "hash_async", _hash)

        result = await identity_service.register("taken@example.com", "pw2", "teacher")

        assert result.code == AuthErrorCode.DUPLICATE_EMAIL
        assert calls == []

    @pytest.mark.asyncio
    async def test_concurrent_registrations_one_wins(self, database, hasher, token_issuer):
        """Two racing registrations for one email store exactly one account."""

        async def register(role: str):
            async with database.session_maker() as session:
                service = IdentityService(AccountStore(session), hasher, token_issuer)
                return await service.register("race@example.com", "pw1", role)

        results = await asyncio.gather(register("student"), register("teacher"))

        successes = [r for r in results if isinstance(r, AuthSuccess)]
        failures = [r for r in results if isinstance(r, AuthFailure)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert failures[0].code == AuthErrorCode.DUPLICATE_EMAIL

        async with database.session_maker() as session:
            count = await session.scalar(
                select(func.count()).select_from(Account).where(Account.email == "race@example.com")
            )
        assert count == 1


class TestAuthentication:
    """Tests for IdentityService.authenticate."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ROLES)
    async def test_register_then_authenticate(self, identity_service: IdentityService, role: str):
        email = f"{role}@example.com"
        registered = await identity_service.register(email, "s3cret", role)

        result = await identity_service.authenticate(email, "s3cret", role)

        assert isinstance(result, AuthSuccess)
        assert result.account.id == registered.account.id
        claims = identity_service.token_issuer.verify(result.token.access_token)
        assert claims.sub == registered.account.id

    @pytest.mark.asyncio
    async def test_reference_scenario(self, identity_service: IdentityService):
        registered = await identity_service.register("a@x.com", "pw1", "student")
        assert isinstance(registered, AuthSuccess)
        assert registered.account.role == AccountRole.STUDENT

        wrong_password = await identity_service.authenticate("a@x.com", "wrong", "student")
        assert wrong_password.code == AuthErrorCode.INVALID_PASSWORD

        wrong_role = await identity_service.authenticate("a@x.com", "pw1", "teacher")
        assert wrong_role.code == AuthErrorCode.NOT_FOUND_FOR_ROLE

        ok = await identity_service.authenticate("a@x.com", "pw1", "student")
        assert isinstance(ok, AuthSuccess)
        assert ok.account.id == registered.account.id

    @pytest.mark.asyncio
    async def test_unknown_email(self, identity_service: IdentityService):
        result = await identity_service.authenticate("nobody@example.com", "pw1", "student")

        assert result.code == AuthErrorCode.NOT_FOUND_FOR_ROLE

    @pytest.mark.asyncio
    async def test_wrong_role_message_matches_unknown_email(self, identity_service: IdentityService):
        await identity_service.register("known@example.com", "pw1", "parent")

        wrong_role = await identity_service.authenticate("known@example.com", "pw1", "admin")
        unknown = await identity_service.authenticate("unknown@example.com", "pw1", "admin")

        assert wrong_role == unknown

    @pytest.mark.asyncio
    async def test_unrecognised_role_is_not_found(self, identity_service: IdentityService):
        await identity_service.register("r@example.com", "pw1", "student")

        result = await identity_service.authenticate("r@example.com", "pw1", "superuser")

        assert result.code == AuthErrorCode.NOT_FOUND_FOR_ROLE

    @pytest.mark.asyncio
    async def test_missing_fields(self, identity_service: IdentityService):
        result = await identity_service.authenticate("a@x.com", None, "student")

        assert result.code == AuthErrorCode.INVALID_INPUT
        assert result.field == "password"

    @pytest.mark.asyncio
    async def test_corrupt_stored_hash_rejected(self, identity_service: IdentityService, db_session):
        await identity_service.register("corrupt@example.com", "pw1", "student")
        account = await AccountStore(db_session).find_by_email("corrupt@example.com")
        account.password_hash = "not-a-bcrypt-hash"
        await db_session.commit()

        result = await identity_service.authenticate("corrupt@example.com", "pw1", "student")

        assert result.code == AuthErrorCode.INVALID_PASSWORD


class TestFederatedIdentity:
    """Tests for the provider-verified entry points."""

    @pytest.mark.asyncio
    async def test_register_and_login_without_password(self, identity_service: IdentityService):
        identity = FederatedIdentity(
            provider="google",
            subject="1234567890",
            email="oauth@example.com",
            email_verified=True,
        )

        registered = await identity_service.register_federated(identity, "teacher")
        assert isinstance(registered, AuthSuccess)

        result = await identity_service.authenticate_federated(identity, "teacher")
        assert isinstance(result, AuthSuccess)
        assert result.account.id == registered.account.id

    @pytest.mark.asyncio
    async def test_federated_account_stores_provider(self, identity_service: IdentityService, db_session):
        identity = FederatedIdentity(provider="google", subject="1", email="p@example.com", email_verified=True)
        await identity_service.register_federated(identity, "parent")

        account = await AccountStore(db_session).find_by_email("p@example.com")

        assert account.auth_provider == "google"

    @pytest.mark.asyncio
    async def test_unverified_email_refused(self, identity_service: IdentityService):
        identity = FederatedIdentity(provider="google", subject="1", email="u@example.com")

        result = await identity_service.register_federated(identity, "student")

        assert result.code == AuthErrorCode.INVALID_INPUT

    @pytest.mark.asyncio
    async def test_unverified_login_refused(self, identity_service: IdentityService):
        await identity_service.register("v@example.com", "pw1", "student")
        identity = FederatedIdentity(provider="google", subject="1", email="v@example.com")

        result = await identity_service.authenticate_federated(identity, "student")

        assert result.code == AuthErrorCode.INVALID_PASSWORD

    @pytest.mark.asyncio
    async def test_federated_duplicate_email(self, identity_service: IdentityService):
        await identity_service.register("taken@example.com", "pw1", "student")
        identity = FederatedIdentity(provider="google", subject="1", email="taken@example.com", email_verified=True)

        result = await identity_service.register_federated(identity, "parent")

        assert result.code == AuthErrorCode.DUPLICATE_EMAIL


class TestResolveToken:
    """Tests for IdentityService.resolve_token."""

    @pytest.mark.asyncio
    async def test_resolves_account(self, identity_service: IdentityService):
        registered = await identity_service.register("me@example.com", "pw1", "admin")

        account = await identity_service.resolve_token(registered.token.access_token)

        assert account.id == registered.account.id
        assert account.role == AccountRole.ADMIN

    @pytest.mark.asyncio
    async def test_invalid_token(self, identity_service: IdentityService):
        result = await identity_service.resolve_token("garbage")

        assert isinstance(result, AuthFailure)
        assert result.code == AuthErrorCode.INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_unknown_subject(self, identity_service: IdentityService):
        token = identity_service.token_issuer.issue(uuid.uuid4(), AccountRole.STUDENT)

        result = await identity_service.resolve_token(token.access_token)

        assert result.code == AuthErrorCode.INVALID_TOKEN
