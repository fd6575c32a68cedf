"""
Account model for role-scoped identities.
"""

import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from campus_auth.kernel.models.base import Base, TimestampMixin, generate_uuid


PASSWORD_PROVIDER = "password"


class AccountRole(str, Enum):
    """Roles an account can be registered under."""
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"
    PARENT = "parent"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["AccountRole"]:
        """Return the matching role, or None for anything outside the set."""
        try:
            return cls(value)
        except ValueError:
            return None


class Account(Base, TimestampMixin):
    """Registered account. Email is unique across every role."""
    
    __tablename__ = "accounts"
    
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    auth_provider: Mapped[str] = mapped_column(
        String(50),
        default=PASSWORD_PROVIDER,
        nullable=False,
    )

    @property
    def account_role(self) -> AccountRole:
        return AccountRole(self.role)
    
    def __repr__(self) -> str:
        return f"<Account {self.email} ({self.role})>"
