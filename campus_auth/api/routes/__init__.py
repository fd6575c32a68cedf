"""
API routes.
"""

from fastapi import APIRouter

from campus_auth.api.routes import auth

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
