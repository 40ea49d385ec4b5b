"""
User model for authentication and document ownership.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base
from app.db.models.base import TimestampMixin


class UserModel(TimestampMixin, Base):
    """User account. Documents reference users by id and never own them."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String,
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    email: Mapped[str] = mapped_column(
        String,
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(
        String,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(
        String,
        default="user",
        nullable=False,
    )
    avatar: Mapped[Optional[str]] = mapped_column(
        String,
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    is_email_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # One-time tokens are stored hashed
    email_verification_token_hash: Mapped[Optional[str]] = mapped_column(
        String,
        nullable=True,
        index=True,
    )
    email_verification_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    password_reset_token_hash: Mapped[Optional[str]] = mapped_column(
        String,
        nullable=True,
        index=True,
    )
    password_reset_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("role", "user")
        kwargs.setdefault("is_active", True)
        kwargs.setdefault("is_email_verified", False)
        super().__init__(**kwargs)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
