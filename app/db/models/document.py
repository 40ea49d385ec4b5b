"""
Document-related ORM models.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.database import Base
from app.db.models.base import JSONType, TimestampMixin


class DocumentModel(TimestampMixin, Base):
    """Knowledge base page."""

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(
        String,
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String,
        default="draft",
        nullable=False,
        index=True,
    )
    privacy: Mapped[str] = mapped_column(
        String,
        default="private",
        nullable=False,
        index=True,
    )
    tags: Mapped[list] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )
    author_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    last_modified_by_id: Mapped[Optional[str]] = mapped_column(
        String,
        ForeignKey("users.id"),
        nullable=True,
    )
    current_version: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True,
    )
    # Bumped by SQLAlchemy on every UPDATE; a stale write raises StaleDataError
    revision: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Relationships
    permissions: Mapped[list["DocumentPermissionModel"]] = relationship(
        "DocumentPermissionModel",
        back_populates="document",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    versions: Mapped[list["DocumentVersionModel"]] = relationship(
        "DocumentVersionModel",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="DocumentVersionModel.version_number",
        lazy="selectin",
    )
    mentions: Mapped[list["DocumentMentionModel"]] = relationship(
        "DocumentMentionModel",
        back_populates="document",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": revision}

    def __init__(self, **kwargs):
        kwargs.setdefault("status", "draft")
        kwargs.setdefault("privacy", "private")
        kwargs.setdefault("tags", [])
        kwargs.setdefault("current_version", 1)
        kwargs.setdefault("is_deleted", False)
        kwargs.setdefault("permissions", [])
        kwargs.setdefault("versions", [])
        kwargs.setdefault("mentions", [])
        super().__init__(**kwargs)
        if self.last_modified_by_id is None:
            self.last_modified_by_id = self.author_id

    @property
    def collaborators(self) -> list[str]:
        """User ids holding an explicit permission entry."""
        return [permission.user_id for permission in self.permissions]


class DocumentPermissionModel(Base):
    """Explicit grant of a permission level to one user on one document."""

    __tablename__ = "document_permissions"
    __table_args__ = (
        UniqueConstraint("document_id", "user_id", name="uq_document_permissions_user"),
    )

    id: Mapped[str] = mapped_column(
        String,
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    document_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    level: Mapped[str] = mapped_column(
        String,
        nullable=False,
    )
    granted_by_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("users.id"),
        nullable=False,
    )
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    # Relationships
    document: Mapped["DocumentModel"] = relationship(
        "DocumentModel",
        back_populates="permissions",
    )


class DocumentVersionModel(Base):
    """Immutable snapshot of a document's title and content before an edit."""

    __tablename__ = "document_versions"
    __table_args__ = (
        UniqueConstraint("document_id", "version_number", name="uq_document_versions_number"),
    )

    id: Mapped[str] = mapped_column(
        String,
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    document_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    created_by_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("users.id"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    change_description: Mapped[str] = mapped_column(
        Text,
        default="",
        nullable=False,
    )

    # Relationships
    document: Mapped["DocumentModel"] = relationship(
        "DocumentModel",
        back_populates="versions",
    )


class DocumentMentionModel(Base):
    """A user @mentioned in a document's content."""

    __tablename__ = "document_mentions"
    __table_args__ = (
        UniqueConstraint("document_id", "user_id", name="uq_document_mentions_user"),
    )

    id: Mapped[str] = mapped_column(
        String,
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    document_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    mentioned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    # Relationships
    document: Mapped["DocumentModel"] = relationship(
        "DocumentModel",
        back_populates="mentions",
    )
