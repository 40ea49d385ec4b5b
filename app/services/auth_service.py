"""
Authentication service: registration, login and account recovery.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.auth import (
    hash_password,
    verify_password,
    create_token_pair,
    generate_one_time_token,
    hash_one_time_token,
    TokenPair,
)
from app.core.exceptions import NotFoundError, UnauthenticatedError, ValidationError
from app.db.database import flush_changes
from app.db.models import UserModel
from app.db.models.base import ensure_utc
from app.services.notifier import EmailNotifier, get_notifier
from app.services.user_service import validate_name

logger = logging.getLogger(__name__)


def issue_tokens(user: UserModel) -> TokenPair:
    """Access/refresh pair carrying the user's platform role."""
    return create_token_pair(user.id, user.email, user.role)


class AuthService:
    """Service for authentication and credential management."""

    def __init__(
        self,
        session: AsyncSession,
        notifier: Optional[EmailNotifier] = None,
    ):
        self.session = session
        self.notifier = notifier or get_notifier()

    async def get_user_by_id(self, user_id: str) -> Optional[UserModel]:
        """Get user by ID."""
        return await self.session.get(UserModel, user_id)

    async def get_user_by_email(self, email: str) -> Optional[UserModel]:
        """Get user by email."""
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def _get_user_by_token(self, column, raw_token: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(column == hash_one_time_token(raw_token))
        )
        return result.scalar_one_or_none()

    async def _send_verification(self, user: UserModel) -> None:
        raw, digest = generate_one_time_token()
        user.email_verification_token_hash = digest
        user.email_verification_expires_at = datetime.now(timezone.utc) + timedelta(
            hours=settings.email_verification_expire_hours
        )
        await flush_changes(self.session)

        url = f"{settings.frontend_url}/verify-email/{raw}"
        # Delivery is the point of the request, so a failure propagates
        await self.notifier.send(
            user.email,
            "Email Verification",
            f"Please click on the link to verify your email: {url}",
        )

    async def register(
        self,
        name: str,
        email: str,
        password: str,
    ) -> UserModel:
        """
        Register a new user and email a verification link.

        Args:
            name: Display name
            email: User's email address
            password: Plain text password

        Returns:
            Created UserModel (unverified)

        Raises:
            ValidationError: If the email is taken or the name is invalid
            NotificationError: If the verification email cannot be sent
        """
        name = validate_name(name)
        email = email.strip().lower()

        if await self.get_user_by_email(email):
            raise ValidationError(
                f"Email {email} already registered",
                user_message="User already exists with this email",
            )

        now = datetime.now(timezone.utc)
        user = UserModel(
            id=str(uuid4()),
            email=email,
            name=name,
            password_hash=hash_password(password),
            created_at=now,
            updated_at=now,
        )
        self.session.add(user)
        await self._send_verification(user)

        logger.info(f"Registered user {user.id}")
        return user

    async def resend_verification(self, email: str) -> None:
        """
        Issue a fresh verification link.

        Raises:
            NotFoundError: Unknown email
            ValidationError: Already verified
        """
        user = await self.get_user_by_email(email)
        if not user or not user.is_active:
            raise NotFoundError(f"No user with email {email}", user_message="User not found")
        if user.is_email_verified:
            raise ValidationError(
                f"User {user.id} already verified",
                user_message="Email is already verified",
            )
        await self._send_verification(user)

    async def verify_email(self, raw_token: str) -> UserModel:
        """
        Mark the owner of a verification token as verified.

        Raises:
            ValidationError: Unknown or expired token
        """
        user = await self._get_user_by_token(UserModel.email_verification_token_hash, raw_token)
        expires_at = ensure_utc(user.email_verification_expires_at) if user else None
        if not user or not expires_at or expires_at <= datetime.now(timezone.utc):
            raise ValidationError(
                "Unknown or expired verification token",
                user_message="Invalid or expired verification token",
            )

        user.is_email_verified = True
        user.email_verification_token_hash = None
        user.email_verification_expires_at = None
        user.updated_at = datetime.now(timezone.utc)
        await flush_changes(self.session)

        logger.info(f"Verified email for user {user.id}")
        return user

    async def login(self, email: str, password: str) -> tuple[UserModel, TokenPair]:
        """
        Authenticate user and return tokens.

        Raises:
            UnauthenticatedError: Bad credentials, deactivated account, or
                unverified email
        """
        user = await self.get_user_by_email(email)

        if not user or not user.is_active or not verify_password(password, user.password_hash):
            raise UnauthenticatedError(
                f"Failed login for {email}",
                user_message="Invalid email or password",
            )

        if not user.is_email_verified:
            raise UnauthenticatedError(
                f"Unverified login for user {user.id}",
                user_message=(
                    "Please verify your email before logging in. "
                    "Check your inbox for the verification link."
                ),
            )

        return user, issue_tokens(user)

    async def forgot_password(self, email: str) -> None:
        """
        Email a password reset link.

        Raises:
            NotFoundError: Unknown email
            NotificationError: If the email cannot be sent
        """
        user = await self.get_user_by_email(email)
        if not user or not user.is_active:
            raise NotFoundError(f"No user with email {email}", user_message="User not found")

        raw, digest = generate_one_time_token()
        user.password_reset_token_hash = digest
        user.password_reset_expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=settings.password_reset_expire_minutes
        )
        await flush_changes(self.session)

        url = f"{settings.frontend_url}/reset-password/{raw}"
        await self.notifier.send(
            user.email,
            "Password Reset",
            "You requested a password reset. "
            f"Please click on the link to reset your password: {url}",
        )

    async def reset_password(self, raw_token: str, new_password: str) -> TokenPair:
        """
        Set a new password using a reset token.

        Raises:
            ValidationError: Unknown or expired token
        """
        user = await self._get_user_by_token(UserModel.password_reset_token_hash, raw_token)
        expires_at = ensure_utc(user.password_reset_expires_at) if user else None
        if not user or not expires_at or expires_at <= datetime.now(timezone.utc):
            raise ValidationError(
                "Unknown or expired reset token",
                user_message="Invalid or expired reset token",
            )

        user.password_hash = hash_password(new_password)
        user.password_reset_token_hash = None
        user.password_reset_expires_at = None
        user.updated_at = datetime.now(timezone.utc)
        await flush_changes(self.session)

        logger.info(f"Password reset for user {user.id}")
        return issue_tokens(user)

    async def change_password(
        self,
        user: UserModel,
        current_password: str,
        new_password: str,
    ) -> TokenPair:
        """
        Change password after re-checking the current one.

        Raises:
            UnauthenticatedError: Current password is wrong
        """
        if not verify_password(current_password, user.password_hash):
            raise UnauthenticatedError(
                f"Wrong current password for user {user.id}",
                user_message="Current password is incorrect",
            )

        user.password_hash = hash_password(new_password)
        user.updated_at = datetime.now(timezone.utc)
        await flush_changes(self.session)
        return issue_tokens(user)
