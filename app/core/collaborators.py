"""
Collaborator management.

The document's permission entries are the single source of truth for
sharing; ``DocumentModel.collaborators`` is computed from them. All grant,
revoke and mention bookkeeping goes through the functions below.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from app.core.permissions import PermissionLevel, find_permission
from app.db.models import DocumentMentionModel, DocumentModel, DocumentPermissionModel

logger = logging.getLogger(__name__)


def grant(
    document: DocumentModel,
    user_id: str,
    level: PermissionLevel,
    granted_by: str,
    now: Optional[datetime] = None,
) -> DocumentPermissionModel:
    """
    Grant or update a user's permission on a document.

    An existing entry is updated in place (level, grantor, timestamp); a
    missing one is appended. There is never more than one entry per user.

    Returns:
        The permission entry for ``user_id``
    """
    level = PermissionLevel(level)
    now = now or datetime.now(timezone.utc)

    permission = find_permission(document, user_id)
    if permission is not None:
        permission.level = level.value
        permission.granted_by_id = granted_by
        permission.granted_at = now
        return permission

    permission = DocumentPermissionModel(
        user_id=user_id,
        level=level.value,
        granted_by_id=granted_by,
        granted_at=now,
    )
    document.permissions.append(permission)
    return permission


def revoke(document: DocumentModel, user_id: str) -> bool:
    """
    Remove a user's permission entry.

    Returns:
        True if an entry was removed, False if the user held none
    """
    permission = find_permission(document, user_id)
    if permission is None:
        return False

    document.permissions.remove(permission)
    return True


def grant_for_mention(
    document: DocumentModel,
    user_id: str,
    granted_by: str,
    now: Optional[datetime] = None,
) -> Optional[DocumentPermissionModel]:
    """
    Share a document with a mentioned user at ``view`` level.

    Only grants when the user holds no entry yet; an existing grant of any
    level is left untouched so a mention never downgrades an editor. The
    author needs no entry.

    Returns:
        The new entry, or None if nothing was granted
    """
    if user_id == document.author_id:
        return None
    if find_permission(document, user_id) is not None:
        return None
    return grant(document, user_id, PermissionLevel.VIEW, granted_by, now)


def add_mention(
    document: DocumentModel,
    user_id: str,
    now: Optional[datetime] = None,
) -> bool:
    """
    Record that ``user_id`` is mentioned in the document.

    Mentions are append-only; the first-mentioned timestamp is kept on
    re-mention.

    Returns:
        True if the mention is new
    """
    if any(mention.user_id == user_id for mention in document.mentions):
        return False

    document.mentions.append(
        DocumentMentionModel(
            user_id=user_id,
            mentioned_at=now or datetime.now(timezone.utc),
        )
    )
    return True


def apply_mentions(
    document: DocumentModel,
    user_ids: Iterable[str],
    granted_by: str,
    now: Optional[datetime] = None,
) -> list[str]:
    """
    Record mentions and auto-share the document with each mentioned user.

    Returns:
        Ids of users who received a new view grant
    """
    now = now or datetime.now(timezone.utc)
    newly_shared = []

    for user_id in sorted(user_ids):
        add_mention(document, user_id, now)
        if grant_for_mention(document, user_id, granted_by, now) is not None:
            newly_shared.append(user_id)

    if newly_shared:
        logger.info(
            f"Auto-shared document {document.id} with {len(newly_shared)} mentioned user(s)"
        )
    return newly_shared
