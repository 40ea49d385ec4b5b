"""
Document service: the lifecycle of knowledge base pages.

Every operation takes the acting principal explicitly. Reads and writes are
gated by the permission evaluator; title/content edits are snapshotted into
the version log before they are applied; @mentions in new content share the
page with the mentioned users.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import cast, func, or_, select, String
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import collaborators, versioning
from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from app.core.mentions import extract_mentions
from app.core.permissions import (
    Actor,
    PermissionLevel,
    Privacy,
    can_manage,
    has_permission,
)
from app.db.database import flush_changes
from app.db.models import DocumentModel, DocumentPermissionModel, DocumentVersionModel
from app.models.schemas import DocumentCreate, DocumentUpdate
from app.services.notifier import EmailNotifier, get_notifier
from app.services.user_service import UserService, like_contains

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 200


class DocumentStatus(str, Enum):
    """Publication status. Any status may follow any other."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# New documents cannot start out archived
CREATE_STATUSES = (DocumentStatus.DRAFT.value, DocumentStatus.PUBLISHED.value)


def _choice(value: str, allowed, field: str) -> str:
    allowed = [item.value if isinstance(item, Enum) else item for item in allowed]
    if value not in allowed:
        raise ValidationError(
            f"Invalid {field} {value!r}",
            user_message=f"{field.capitalize()} must be one of: {', '.join(allowed)}",
        )
    return value


def validate_title(title: Optional[str]) -> str:
    """Trim and length-check a title."""
    title = (title or "").strip()
    if not title or len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(
            f"Title length {len(title)} outside 1-{TITLE_MAX_LENGTH}",
            user_message=(
                f"Title is required and must be at most {TITLE_MAX_LENGTH} characters"
            ),
        )
    return title


def validate_content(content: Optional[str]) -> str:
    """Content must contain something besides whitespace."""
    if content is None or not content.strip():
        raise ValidationError("Empty content", user_message="Content is required")
    return content


def normalize_tags(tags: Optional[list[str]]) -> list[str]:
    """Trim tags, drop blanks and duplicates, keep order."""
    seen: dict[str, None] = {}
    for tag in tags or []:
        tag = tag.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


def visible_to(user_id: Optional[str]):
    """
    SQL condition for documents a user can see in listings.

    Anonymous callers see public documents only.
    """
    if user_id is None:
        return DocumentModel.privacy == Privacy.PUBLIC.value
    return or_(
        DocumentModel.author_id == user_id,
        DocumentModel.privacy == Privacy.PUBLIC.value,
        DocumentModel.permissions.any(DocumentPermissionModel.user_id == user_id),
    )


def text_matches(query: str):
    """SQL condition: any word of ``query`` occurs in title, content or tags."""
    conditions = []
    for term in query.split():
        pattern = like_contains(term)
        conditions.extend(
            [
                DocumentModel.title.ilike(pattern, escape="\\"),
                DocumentModel.content.ilike(pattern, escape="\\"),
                cast(DocumentModel.tags, String).ilike(pattern, escape="\\"),
            ]
        )
    return or_(*conditions)


class DocumentService:
    """Service for document CRUD, sharing and version history."""

    def __init__(
        self,
        session: AsyncSession,
        notifier: Optional[EmailNotifier] = None,
    ):
        self.session = session
        self.users = UserService(session)
        self.notifier = notifier or get_notifier()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _load(self, document_id: str) -> DocumentModel:
        """Load a live document or raise NotFoundError."""
        document = await self.session.get(DocumentModel, document_id)
        if document is None or document.is_deleted:
            raise NotFoundError(
                f"Document {document_id} not found",
                user_message="Document not found",
            )
        return document

    async def _resolve_mentions(self, content: str) -> set[str]:
        return await extract_mentions(content, self.users.find_user_by_fragment)

    def _require(
        self,
        document: DocumentModel,
        actor: Actor,
        level: PermissionLevel,
    ) -> None:
        if not has_permission(document, actor.user_id, level):
            raise ForbiddenError(
                f"User {actor.user_id} lacks {level.value} on document {document.id}"
            )

    def _require_manager(self, document: DocumentModel, actor: Actor) -> None:
        if not can_manage(document, actor.user_id, actor.role):
            raise ForbiddenError(
                f"User {actor.user_id} is neither author nor admin of document {document.id}"
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_document(self, actor: Actor, data: DocumentCreate) -> DocumentModel:
        """
        Create a document authored by ``actor``.

        Mentioned users are recorded and given view access. No version entry
        is written; the stored state is version 1.

        Raises:
            ValidationError: On a bad title, empty content or unknown enum value
        """
        title = validate_title(data.title)
        content = validate_content(data.content)
        privacy = _choice(data.privacy, Privacy, "privacy")
        status = _choice(data.status, CREATE_STATUSES, "status")

        mentioned = await self._resolve_mentions(content)

        now = datetime.now(timezone.utc)
        document = DocumentModel(
            title=title,
            content=content,
            privacy=privacy,
            status=status,
            tags=normalize_tags(data.tags),
            author_id=actor.user_id,
            last_modified_by_id=actor.user_id,
            created_at=now,
            updated_at=now,
        )
        collaborators.apply_mentions(document, mentioned, actor.user_id, now)
        self.session.add(document)
        await flush_changes(self.session)

        logger.info(f"User {actor.user_id} created document {document.id}")
        return document

    async def get_document(self, actor: Optional[Actor], document_id: str) -> DocumentModel:
        """
        Fetch a document the caller may view.

        Raises:
            NotFoundError: Missing or soft-deleted
            UnauthenticatedError: Private document and no caller identity
            ForbiddenError: Caller lacks view permission
        """
        document = await self._load(document_id)
        if has_permission(document, actor.user_id if actor else None, PermissionLevel.VIEW):
            return document
        if actor is None:
            raise UnauthenticatedError(f"Anonymous access to private document {document_id}")
        raise ForbiddenError(f"User {actor.user_id} cannot view document {document_id}")

    async def update_document(
        self,
        actor: Actor,
        document_id: str,
        data: DocumentUpdate,
    ) -> DocumentModel:
        """
        Apply a partial update.

        Title/content changes snapshot the previous state first. New content
        is scanned for mentions; newly mentioned users get view access, and
        existing grants are never lowered.

        Raises:
            NotFoundError, ForbiddenError, ValidationError
            ConflictError: ``expectedVersion`` is stale, or a concurrent edit won
        """
        document = await self._load(document_id)
        self._require(document, actor, PermissionLevel.EDIT)

        if data.expectedVersion is not None and data.expectedVersion != document.current_version:
            raise ConflictError(
                f"Document {document_id} is at version {document.current_version}, "
                f"edit was based on {data.expectedVersion}"
            )

        title = validate_title(data.title) if data.title is not None else None
        content = validate_content(data.content) if data.content is not None else None
        privacy = _choice(data.privacy, Privacy, "privacy") if data.privacy is not None else None
        status = _choice(data.status, DocumentStatus, "status") if data.status is not None else None

        # Resolve before touching the document so a failed lookup changes nothing
        mentioned = await self._resolve_mentions(content) if content is not None else set()

        now = datetime.now(timezone.utc)
        changes = versioning.pending_changes(document, title=title, content=content)
        version = versioning.apply_versioned_changes(
            document,
            changes,
            modified_by=actor.user_id,
            change_description=data.changeDescription or "",
            now=now,
        )
        collaborators.apply_mentions(document, mentioned, actor.user_id, now)

        if privacy is not None:
            document.privacy = privacy
        if status is not None:
            document.status = status
        if data.tags is not None:
            document.tags = normalize_tags(data.tags)

        document.last_modified_by_id = actor.user_id
        document.updated_at = now
        await flush_changes(self.session)

        if version is not None:
            logger.info(
                f"User {actor.user_id} updated document {document_id} "
                f"to version {document.current_version}"
            )
        return document

    async def delete_document(self, actor: Actor, document_id: str) -> None:
        """
        Soft-delete a document (author or platform admin).

        Raises:
            NotFoundError, ForbiddenError
        """
        document = await self._load(document_id)
        self._require_manager(document, actor)

        document.is_deleted = True
        document.updated_at = datetime.now(timezone.utc)
        await flush_changes(self.session)
        logger.info(f"User {actor.user_id} deleted document {document_id}")

    # ------------------------------------------------------------------
    # Sharing
    # ------------------------------------------------------------------

    async def grant_collaborator(
        self,
        actor: Actor,
        document_id: str,
        target_user_id: str,
        level: str,
    ) -> DocumentPermissionModel:
        """
        Share a document with a user at ``level`` (author or platform admin).

        Re-granting updates the existing entry. The target is told by email;
        a failed email does not undo the grant.

        Raises:
            NotFoundError: Document or target user missing
            ForbiddenError: Actor may not manage sharing
            ValidationError: Unknown level, or the target is the author
        """
        level = PermissionLevel(_choice(level, PermissionLevel, "permission"))
        document = await self._load(document_id)
        self._require_manager(document, actor)

        target = await self.users.get_user(target_user_id)
        if target.id == document.author_id:
            raise ValidationError(
                f"User {target.id} is the author of document {document_id}",
                user_message="The author already has full access",
            )

        permission = collaborators.grant(document, target.id, level, actor.user_id)
        document.updated_at = datetime.now(timezone.utc)
        await flush_changes(self.session)

        logger.info(
            f"User {actor.user_id} granted {level.value} on document {document_id} to {target.id}"
        )
        await self.notifier.send_quietly(
            target.email,
            "A document was shared with you",
            f'You now have {level.value} access to "{document.title}".',
        )
        return permission

    async def grant_collaborator_by_email(
        self,
        actor: Actor,
        document_id: str,
        email: str,
        level: str,
    ) -> DocumentPermissionModel:
        """Same as ``grant_collaborator`` with the target looked up by email."""
        target = await self.users.get_user_by_email(email)
        if target is None or not target.is_active:
            # Check the document first so a missing page is reported as such
            await self._load(document_id)
            raise NotFoundError(f"No user with email {email}", user_message="User not found")
        return await self.grant_collaborator(actor, document_id, target.id, level)

    async def revoke_collaborator(
        self,
        actor: Actor,
        document_id: str,
        target_user_id: str,
    ) -> bool:
        """
        Remove a user's grant (author or platform admin).

        Revoking a user who holds no grant is a no-op.

        Returns:
            True if a grant was removed
        """
        document = await self._load(document_id)
        self._require_manager(document, actor)

        removed = collaborators.revoke(document, target_user_id)
        if removed:
            document.updated_at = datetime.now(timezone.utc)
            await flush_changes(self.session)
            logger.info(
                f"User {actor.user_id} revoked access to document {document_id} "
                f"from {target_user_id}"
            )
        return removed

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def get_versions(self, actor: Actor, document_id: str) -> list[DocumentVersionModel]:
        """
        Version log, oldest first.

        Raises:
            NotFoundError, ForbiddenError
        """
        document = await self._load(document_id)
        self._require(document, actor, PermissionLevel.VIEW)
        return sorted(document.versions, key=lambda version: version.version_number)

    async def get_version(
        self,
        actor: Actor,
        document_id: str,
        version_number: int,
    ) -> DocumentVersionModel:
        """One recorded snapshot by number."""
        for version in await self.get_versions(actor, document_id):
            if version.version_number == version_number:
                return version
        raise NotFoundError(
            f"Document {document_id} has no version {version_number}",
            user_message="Version not found",
        )

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def _page(self, query, limit: int, offset: int) -> tuple[list[DocumentModel], int]:
        total = await self.session.scalar(select(func.count()).select_from(query.subquery()))
        result = await self.session.execute(
            query.order_by(DocumentModel.updated_at.desc(), DocumentModel.id.asc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def list_documents(
        self,
        actor: Optional[Actor],
        status: Optional[str] = None,
        search: Optional[str] = None,
        privacy: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[DocumentModel], int]:
        """
        Live documents the caller may see: authored, public, or shared.

        Returns:
            (page of documents, total matching)
        """
        query = (
            select(DocumentModel)
            .where(DocumentModel.is_deleted.is_(False))
            .where(visible_to(actor.user_id if actor else None))
        )
        if status:
            query = query.where(DocumentModel.status == status)
        if privacy:
            query = query.where(DocumentModel.privacy == privacy)
        if search and search.strip():
            query = query.where(text_matches(search))
        return await self._page(query, limit, offset)

    async def list_user_documents(
        self,
        actor: Actor,
        user_id: str,
        status: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[DocumentModel], int]:
        """
        Documents authored by ``user_id``.

        The user themself and admins see all of them; everyone else sees
        only the public ones.
        """
        await self.users.get_user(user_id)

        query = (
            select(DocumentModel)
            .where(DocumentModel.is_deleted.is_(False))
            .where(DocumentModel.author_id == user_id)
        )
        if actor.user_id != user_id and not actor.is_admin:
            query = query.where(DocumentModel.privacy == Privacy.PUBLIC.value)
        if status:
            query = query.where(DocumentModel.status == status)
        return await self._page(query, limit, offset)

    async def list_collaborations(
        self,
        actor: Actor,
        user_id: str,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[DocumentModel], int]:
        """
        Documents shared with ``user_id`` (self or admin only).

        Raises:
            NotFoundError, ForbiddenError
        """
        await self.users.get_user(user_id)
        if actor.user_id != user_id and not actor.is_admin:
            raise ForbiddenError(f"User {actor.user_id} cannot list collaborations of {user_id}")

        query = (
            select(DocumentModel)
            .where(DocumentModel.is_deleted.is_(False))
            .where(DocumentModel.permissions.any(DocumentPermissionModel.user_id == user_id))
        )
        return await self._page(query, limit, offset)
