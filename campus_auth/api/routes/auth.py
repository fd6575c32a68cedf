"""
Authentication endpoints.
"""

from fastapi import APIRouter, Request, status

from campus_auth.api.deps import AppSettings, CurrentAccount, Identity, get_client_ip
from campus_auth.api.errors import to_auth_error
from campus_auth.kernel.identity.results import AuthFailure
from campus_auth.logging_config import get_logger
from campus_auth.schemas.auth import (
    AccountResponse,
    AuthResponse,
    LoginRequest,
    RegisterRequest,
)

logger = get_logger(__name__)

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    data: RegisterRequest,
    identity: Identity,
    settings: AppSettings,
):
    """
    Register a new account under a role.
    
    Returns a bearer token valid for seven days.
    """
    result = await identity.register(
        email=data.email,
        password=data.password,
        role=data.role,
    )
    
    if isinstance(result, AuthFailure):
        logger.info(
            "Register failed",
            extra={"code": result.code.value, "client_ip": get_client_ip(request)},
        )
        raise to_auth_error(result, settings.distinguish_credential_errors)
    
    return AuthResponse.from_result(result, f"{result.role.value} registered successfully")


@router.post("/login", response_model=AuthResponse)
async def login(
    request: Request,
    data: LoginRequest,
    identity: Identity,
    settings: AppSettings,
):
    """
    Authenticate for a specific role and return a token.
    """
    result = await identity.authenticate(
        email=data.email,
        password=data.password,
        role=data.role,
    )
    
    if isinstance(result, AuthFailure):
        logger.info(
            "Login failed",
            extra={"code": result.code.value, "client_ip": get_client_ip(request)},
        )
        raise to_auth_error(result, settings.distinguish_credential_errors)
    
    return AuthResponse.from_result(result, f"{result.role.value} login successful")


@router.get("/me", response_model=AccountResponse)
async def get_current_account_profile(account: CurrentAccount):
    """Get the account the bearer token belongs to."""
    return AccountResponse(
        id=account.id,
        email=account.email,
        role=account.role.value,
        created_at=account.created_at,
    )
