"""
Document access control.

Decides whether a principal may view, edit, or administer a document given
its privacy mode, its author, and its explicit permission grants. Everything
here works on already-loaded objects and never touches the database.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from app.db.models import DocumentModel, DocumentPermissionModel


class PermissionLevel(str, Enum):
    """Ordered capability on a document: view < edit < admin."""

    VIEW = "view"
    EDIT = "edit"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _LEVEL_RANKS[self]

    def satisfies(self, required: "PermissionLevel") -> bool:
        """True if this level is at least ``required``."""
        return self.rank >= PermissionLevel(required).rank


_LEVEL_RANKS = {
    PermissionLevel.VIEW: 1,
    PermissionLevel.EDIT: 2,
    PermissionLevel.ADMIN: 3,
}


class Privacy(str, Enum):
    """Document visibility mode."""

    PUBLIC = "public"
    PRIVATE = "private"


class UserRole(str, Enum):
    """Platform-wide role."""

    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """The authenticated principal a core operation runs on behalf of."""

    user_id: str
    role: str = UserRole.USER.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(user_id=user.id, role=user.role)


def find_permission(
    document: "DocumentModel",
    user_id: str,
) -> Optional["DocumentPermissionModel"]:
    """Return the permission entry for ``user_id``, if any."""
    for permission in document.permissions:
        if permission.user_id == user_id:
            return permission
    return None


def has_permission(
    document: "DocumentModel",
    user_id: Optional[str],
    required_level: PermissionLevel = PermissionLevel.VIEW,
) -> bool:
    """
    Check whether a user holds at least ``required_level`` on a document.

    Rules, in order:
    1. Public documents are viewable by anyone, including anonymous callers.
    2. The author holds every level.
    3. Otherwise the user's explicit grant must be at least ``required_level``.

    Args:
        document: Loaded document with its permissions
        user_id: Principal to check, or None for anonymous callers
        required_level: Minimum level needed

    Returns:
        True if access is granted
    """
    required_level = PermissionLevel(required_level)

    if document.privacy == Privacy.PUBLIC.value and required_level is PermissionLevel.VIEW:
        return True

    if user_id is None:
        return False

    if document.author_id == user_id:
        return True

    permission = find_permission(document, user_id)
    if permission is None:
        return False

    return PermissionLevel(permission.level).satisfies(required_level)


def can_manage(document: "DocumentModel", user_id: str, role: str) -> bool:
    """Author or platform admin: may delete and manage collaborators."""
    return document.author_id == user_id or role == UserRole.ADMIN.value
