"""
User service: identity lookups, profiles and account administration.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import collaborators
from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.core.permissions import Actor, Privacy
from app.db.database import flush_changes
from app.db.models import DocumentModel, DocumentPermissionModel, UserModel

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
MIN_SEARCH_LENGTH = 2


def like_contains(fragment: str) -> str:
    """Build a LIKE pattern matching ``fragment`` anywhere, with wildcards escaped."""
    escaped = (
        fragment.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )
    return f"%{escaped}%"


def validate_name(name: str) -> str:
    """Trim and length-check a display name."""
    name = (name or "").strip()
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        raise ValidationError(
            f"Name length {len(name)} outside {NAME_MIN_LENGTH}-{NAME_MAX_LENGTH}",
            user_message=(
                f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
            ),
        )
    return name


class UserService:
    """Service for user lookups and administration."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_by_id(self, user_id: str) -> Optional[UserModel]:
        """Get user by ID, active or not."""
        return await self.session.get(UserModel, user_id)

    async def get_user(self, user_id: str) -> UserModel:
        """
        Get an active user.

        Raises:
            NotFoundError: If the user does not exist or was removed
        """
        user = await self.get_user_by_id(user_id)
        if user is None or not user.is_active:
            raise NotFoundError(f"User {user_id} not found", user_message="User not found")
        return user

    async def get_user_by_email(self, email: str) -> Optional[UserModel]:
        """Get user by email (case-insensitive)."""
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_users_by_ids(self, user_ids: Iterable[str]) -> dict[str, UserModel]:
        """Load several users at once, keyed by id."""
        ids = {user_id for user_id in user_ids if user_id}
        if not ids:
            return {}
        result = await self.session.execute(
            select(UserModel).where(UserModel.id.in_(ids))
        )
        return {user.id: user for user in result.scalars().all()}

    async def find_user_by_fragment(self, fragment: str) -> Optional[str]:
        """
        Resolve a mention token to a user id.

        Matches active users whose name or email contains ``fragment``,
        ignoring case. When several match, the earliest registered wins
        (``created_at``, then ``id``).

        Returns:
            The user id, or None if nobody matches
        """
        if not fragment:
            return None

        pattern = like_contains(fragment)
        result = await self.session.execute(
            select(UserModel.id)
            .where(UserModel.is_active.is_(True))
            .where(
                or_(
                    UserModel.name.ilike(pattern, escape="\\"),
                    UserModel.email.ilike(pattern, escape="\\"),
                )
            )
            .order_by(UserModel.created_at.asc(), UserModel.id.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_users(
        self,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[UserModel], int]:
        """List all accounts, newest first."""
        total = await self.session.scalar(select(func.count()).select_from(UserModel))
        result = await self.session.execute(
            select(UserModel)
            .order_by(UserModel.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def get_profile(
        self,
        user_id: str,
        recent_limit: int = 5,
    ) -> tuple[UserModel, int, int, list[DocumentModel]]:
        """
        Profile data for a user.

        Returns:
            (user, live document count, public document count, most recently
            updated public documents)
        """
        user = await self.get_user(user_id)
        now = datetime.now(timezone.utc)

        authored = (
            select(func.count())
            .select_from(DocumentModel)
            .where(DocumentModel.author_id == user_id)
            .where(DocumentModel.is_deleted.is_(False))
        )
        documents_count = await self.session.scalar(authored)
        public_count = await self.session.scalar(
            authored.where(DocumentModel.privacy == Privacy.PUBLIC.value)
        )

        result = await self.session.execute(
            select(DocumentModel)
            .where(DocumentModel.author_id == user_id)
            .where(DocumentModel.privacy == Privacy.PUBLIC.value)
            .where(DocumentModel.is_deleted.is_(False))
            .order_by(DocumentModel.updated_at.desc())
            .limit(recent_limit)
        )
        return user, documents_count or 0, public_count or 0, list(result.scalars().all())

    async def update_profile(
        self,
        user: UserModel,
        name: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> UserModel:
        """Change display name and/or avatar URL."""
        if name is not None:
            user.name = validate_name(name)
        if avatar is not None:
            user.avatar = avatar
        user.updated_at = datetime.now(timezone.utc)
        await flush_changes(self.session)
        return user

    async def search_users(
        self,
        query: str,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[UserModel], int]:
        """
        Find active users by name or email fragment.

        Queries shorter than two characters return nothing.
        """
        query = (query or "").strip()
        if len(query) < MIN_SEARCH_LENGTH:
            return [], 0

        pattern = like_contains(query)
        condition = (
            select(UserModel)
            .where(UserModel.is_active.is_(True))
            .where(
                or_(
                    UserModel.name.ilike(pattern, escape="\\"),
                    UserModel.email.ilike(pattern, escape="\\"),
                )
            )
        )
        total = await self.session.scalar(
            select(func.count()).select_from(condition.subquery())
        )
        result = await self.session.execute(
            condition.order_by(UserModel.name.asc(), UserModel.id.asc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def delete_user(self, actor: Actor, user_id: str) -> UserModel:
        """
        Remove a user account (platform admin only).

        Every document the user authored is soft-deleted and the user's
        grants on other documents are revoked. The account row itself is
        deactivated rather than dropped, since retained documents, versions
        and grants still reference it.

        Raises:
            ForbiddenError: If the actor is not an admin
            ValidationError: If an admin tries to remove themselves
            NotFoundError: If the user does not exist
        """
        if not actor.is_admin:
            raise ForbiddenError(f"User {actor.user_id} is not an admin")
        if actor.user_id == user_id:
            raise ValidationError(
                "Admin attempted self-deletion",
                user_message="Cannot delete your own account",
            )

        user = await self.get_user(user_id)
        now = datetime.now(timezone.utc)

        authored = await self.session.execute(
            select(DocumentModel)
            .where(DocumentModel.author_id == user_id)
            .where(DocumentModel.is_deleted.is_(False))
        )
        deleted_documents = 0
        for document in authored.scalars().all():
            document.is_deleted = True
            document.updated_at = now
            deleted_documents += 1

        shared = await self.session.execute(
            select(DocumentModel).where(
                DocumentModel.permissions.any(DocumentPermissionModel.user_id == user_id)
            )
        )
        revoked = 0
        for document in shared.scalars().all():
            if collaborators.revoke(document, user_id):
                document.updated_at = now
                revoked += 1

        user.is_active = False
        user.updated_at = now
        await flush_changes(self.session)

        logger.info(
            f"Removed user {user_id}: soft-deleted {deleted_documents} document(s), "
            f"revoked {revoked} grant(s)"
        )
        return user
