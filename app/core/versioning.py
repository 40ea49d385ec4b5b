"""
Version history for documents.

Before the title or content of a persisted document is overwritten, the
previous state is snapshotted into the append-only version log. Version 1 is
the state at creation and is never snapshotted on its own; the first edit
records version 2.
"""

from datetime import datetime, timezone
from typing import Optional

from app.db.models import DocumentModel, DocumentVersionModel

VERSIONED_FIELDS = ("title", "content")


def pending_changes(
    document: DocumentModel,
    title: Optional[str] = None,
    content: Optional[str] = None,
) -> dict[str, str]:
    """
    Diff incoming title/content against the loaded document.

    Fields that are None or equal to the stored value are not changes.

    Returns:
        Mapping of changed field name to its new value
    """
    incoming = {"title": title, "content": content}
    return {
        field: value
        for field, value in incoming.items()
        if value is not None and value != getattr(document, field)
    }


def record_version(
    document: DocumentModel,
    change_description: str = "",
    now: Optional[datetime] = None,
) -> DocumentVersionModel:
    """
    Snapshot the document's current title and content as the next version.

    Must be called before the new values are assigned. The snapshot is
    attributed to whoever produced the current state (last modifier, or the
    author if nobody has edited yet).

    Returns:
        The appended version entry
    """
    version = DocumentVersionModel(
        version_number=document.current_version + 1,
        title=document.title,
        content=document.content,
        created_by_id=document.last_modified_by_id or document.author_id,
        created_at=now or datetime.now(timezone.utc),
        change_description=change_description or "",
    )
    document.versions.append(version)
    document.current_version = version.version_number
    return version


def apply_versioned_changes(
    document: DocumentModel,
    changes: dict[str, str],
    modified_by: str,
    change_description: str = "",
    now: Optional[datetime] = None,
) -> Optional[DocumentVersionModel]:
    """
    Snapshot, then overwrite title/content with ``changes``.

    Does nothing and returns None when ``changes`` is empty.
    """
    changes = {field: value for field, value in changes.items() if field in VERSIONED_FIELDS}
    if not changes:
        return None

    version = record_version(document, change_description, now)
    for field, value in changes.items():
        setattr(document, field, value)
    document.last_modified_by_id = modified_by
    return version
