"""
Response formatting shared by the route modules.
"""

import math
from typing import Iterable, Optional

from app.db.models import DocumentModel, DocumentVersionModel, UserModel
from app.db.models.base import ensure_utc
from app.models.schemas import (
    DocumentBrief,
    DocumentResponse,
    MentionResponse,
    Pagination,
    PermissionResponse,
    UserResponse,
    UserSummary,
    VersionResponse,
)
from app.services.user_service import UserService


def format_datetime(dt) -> Optional[str]:
    """Format datetime to ISO string."""
    return ensure_utc(dt).isoformat() if dt else None


def paginate(page: int, limit: int, total: int) -> Pagination:
    """Page metadata for a list response."""
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit) if limit else 0,
    )


def referenced_user_ids(documents: Iterable[DocumentModel]) -> set[str]:
    """Every user id a document response will show."""
    ids: set[str] = set()
    for doc in documents:
        ids.add(doc.author_id)
        ids.add(doc.last_modified_by_id)
        for permission in doc.permissions:
            ids.update((permission.user_id, permission.granted_by_id))
        for mention in doc.mentions:
            ids.add(mention.user_id)
    ids.discard(None)
    return ids


async def load_users(
    users: UserService,
    documents: Iterable[DocumentModel] = (),
    extra_ids: Iterable[str] = (),
) -> dict[str, UserModel]:
    """Fetch the users referenced by ``documents`` in one query."""
    documents = list(documents)
    return await users.get_users_by_ids(referenced_user_ids(documents) | set(extra_ids))


def format_user_summary(
    user_id: Optional[str],
    users: dict[str, UserModel],
) -> Optional[UserSummary]:
    """Id plus name/email when the user is known."""
    if user_id is None:
        return None
    user = users.get(user_id)
    if user is None:
        return UserSummary(id=user_id)
    return UserSummary(id=user.id, name=user.name, email=user.email)


def format_user(user: UserModel) -> UserResponse:
    """Format user model to response."""
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        avatar=user.avatar,
        isEmailVerified=user.is_email_verified,
        isActive=user.is_active,
        createdAt=format_datetime(user.created_at),
    )


def format_permissions(doc: DocumentModel, users: dict[str, UserModel]) -> list[PermissionResponse]:
    return [
        PermissionResponse(
            user=format_user_summary(permission.user_id, users),
            permission=permission.level,
            grantedBy=format_user_summary(permission.granted_by_id, users),
            grantedAt=format_datetime(permission.granted_at),
        )
        for permission in doc.permissions
    ]


def format_version(
    version: DocumentVersionModel,
    users: dict[str, UserModel],
) -> VersionResponse:
    return VersionResponse(
        versionNumber=version.version_number,
        title=version.title,
        content=version.content,
        createdBy=format_user_summary(version.created_by_id, users),
        createdAt=format_datetime(version.created_at),
        changeDescription=version.change_description or "",
    )


def format_document(doc: DocumentModel, users: dict[str, UserModel]) -> DocumentResponse:
    """Format document model to response."""
    return DocumentResponse(
        id=doc.id,
        title=doc.title,
        content=doc.content,
        status=doc.status,
        privacy=doc.privacy,
        tags=list(doc.tags or []),
        author=format_user_summary(doc.author_id, users),
        lastModifiedBy=format_user_summary(doc.last_modified_by_id, users),
        collaborators=[format_user_summary(user_id, users) for user_id in doc.collaborators],
        permissions=format_permissions(doc, users),
        mentions=[
            MentionResponse(
                user=format_user_summary(mention.user_id, users),
                mentionedAt=format_datetime(mention.mentioned_at),
            )
            for mention in doc.mentions
        ],
        currentVersion=doc.current_version,
        createdAt=format_datetime(doc.created_at),
        updatedAt=format_datetime(doc.updated_at),
    )


def format_document_brief(doc: DocumentModel) -> DocumentBrief:
    return DocumentBrief(
        id=doc.id,
        title=doc.title,
        status=doc.status,
        updatedAt=format_datetime(doc.updated_at),
    )
