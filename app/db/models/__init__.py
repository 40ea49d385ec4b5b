"""
SQLAlchemy ORM models package.

Re-exports all models for convenient imports.
"""

from app.db.models.user import UserModel
from app.db.models.document import (
    DocumentModel,
    DocumentPermissionModel,
    DocumentVersionModel,
    DocumentMentionModel,
)

__all__ = [
    # User
    "UserModel",
    # Document
    "DocumentModel",
    "DocumentPermissionModel",
    "DocumentVersionModel",
    "DocumentMentionModel",
]
