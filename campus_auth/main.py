"""
CampusSync account authentication service.

FastAPI application factory. Run with:
    uvicorn campus_auth.main:create_app --factory
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from campus_auth.api.errors import AuthError
from campus_auth.api.middleware import RateLimitMiddleware, RequestIdMiddleware
from campus_auth.api.routes import router as api_router
from campus_auth.config import Settings, get_settings
from campus_auth.database import Database
from campus_auth.kernel.identity.password import PasswordHasher
from campus_auth.kernel.identity.tokens import TokenIssuer
from campus_auth.logging_config import configure_logging, get_logger
from campus_auth.schemas.common import HealthResponse

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Acquires the database on startup and releases it on shutdown.
    """
    settings: Settings = app.state.settings
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await app.state.database.init()

    yield

    logger.info("Shutting down...")
    await app.state.database.close()


def _request_headers(request: Request) -> dict:
    req_id = getattr(request.state, "request_id", None)
    return {"X-Request-ID": req_id} if req_id else {}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application with its long-lived collaborators."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.project_name,
        description="Registration and login for student, teacher, admin and parent accounts.",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Read once here; never rotated while the process runs
    app.state.settings = settings
    app.state.database = Database(settings.database_url, echo=settings.debug)
    app.state.password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.token_issuer = TokenIssuer(
        secret_key=settings.secret_key,
        algorithm=settings.algorithm,
        expire_days=settings.token_expire_days,
    )

    # Last added = outermost; CORS wraps everything so 429s carry its headers
    app.add_middleware(
        RateLimitMiddleware,
        path_prefix=f"{settings.api_prefix}/auth",
        limit=settings.rate_limit_auth_per_minute,
        enabled=settings.rate_limit_enabled,
    )
    app.add_middleware(
        RequestIdMiddleware,
        auth_prefix=f"{settings.api_prefix}/auth",
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        """Render workflow failures as {detail, message, code, field}."""
        headers = {**exc.headers, **_request_headers(request)}
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.body.model_dump(exclude_none=True),
            headers=headers,
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        headers = {**(exc.headers or {}), **_request_headers(request)}
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "message": str(exc.detail)},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append({
                "field": field,
                "message": error["msg"],
                "type": error["type"],
            })
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": "Validation error",
                "message": "Validation error",
                "code": "invalid_input",
                "errors": errors,
            },
            headers=_request_headers(request),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions without leaking internals."""
        logger.exception("Unhandled exception: %s", exc)
        req_id = getattr(request.state, "request_id", None)
        if settings.debug:
            content = {"detail": str(exc), "message": str(exc), "type": type(exc).__name__, "request_id": req_id}
        else:
            content = {"detail": "Internal server error", "message": "Server error", "request_id": req_id}
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=content,
            headers=_request_headers(request),
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Check application health."""
        return HealthResponse(status="ok", version=settings.version)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.project_name,
            "version": settings.version,
            "api": {"auth": f"{settings.api_prefix}/auth"},
        }

    app.include_router(api_router, prefix=settings.api_prefix)

    return app


# Main entry point for development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "campus_auth.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=5000,
        reload=get_settings().debug,
    )
