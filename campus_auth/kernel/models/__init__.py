"""
SQLAlchemy models for the account store.
"""

from campus_auth.kernel.models.base import Base, TimestampMixin, generate_uuid
from campus_auth.kernel.models.account import Account, AccountRole, PASSWORD_PROVIDER

__all__ = [
    "Base",
    "TimestampMixin",
    "generate_uuid",
    "Account",
    "AccountRole",
    "PASSWORD_PROVIDER",
]
