"""
Pydantic schemas for API request/response validation.
"""

from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, HttpUrl


# ============ Shared Schemas ============

class Pagination(BaseModel):
    """Page metadata returned with every list."""

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    pages: int = Field(..., ge=0)


class UserSummary(BaseModel):
    """User reference embedded in document responses."""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None


# ============ Document Schemas ============

class DocumentCreate(BaseModel):
    """New document. Field rules are enforced by the document service."""

    title: str = Field(..., description="Page title, 1-200 characters")
    content: str = Field(..., description="Rich text / HTML body")
    privacy: str = Field("private", description="public or private")
    status: str = Field("draft", description="draft or published")
    tags: List[str] = Field(default_factory=list)


class DocumentUpdate(BaseModel):
    """Partial document update. Omitted fields are left unchanged."""

    title: Optional[str] = None
    content: Optional[str] = None
    privacy: Optional[str] = None
    status: Optional[str] = None
    tags: Optional[List[str]] = None
    changeDescription: Optional[str] = Field(
        None, max_length=500, description="Note stored with the version snapshot"
    )
    expectedVersion: Optional[int] = Field(
        None, ge=1, description="Reject the edit unless currentVersion still matches"
    )


class CollaboratorAdd(BaseModel):
    """Explicit share. Identify the user by email or by id."""

    email: Optional[EmailStr] = None
    userId: Optional[str] = None
    permission: str = Field("view", description="view, edit or admin")


class PermissionResponse(BaseModel):
    """One explicit grant."""

    user: UserSummary
    permission: str
    grantedBy: Optional[UserSummary]
    grantedAt: Optional[str]


class MentionResponse(BaseModel):
    """A mentioned user."""

    user: UserSummary
    mentionedAt: Optional[str]


class VersionResponse(BaseModel):
    """Snapshot of a document before an edit."""

    versionNumber: int
    title: str
    content: str
    createdBy: Optional[UserSummary]
    createdAt: Optional[str]
    changeDescription: str = ""


class DocumentResponse(BaseModel):
    """Full document."""

    id: str
    title: str
    content: str
    status: str
    privacy: str
    tags: List[str]
    author: UserSummary
    lastModifiedBy: Optional[UserSummary]
    collaborators: List[UserSummary]
    permissions: List[PermissionResponse]
    mentions: List[MentionResponse]
    currentVersion: int
    createdAt: Optional[str]
    updatedAt: Optional[str]


class DocumentListResponse(BaseModel):
    """Paginated document list."""

    documents: List[DocumentResponse]
    pagination: Pagination


class DocumentBrief(BaseModel):
    """Title-level document reference."""

    id: str
    title: str
    status: str
    updatedAt: Optional[str]


# ============ User Schemas ============

class UserResponse(BaseModel):
    """User account as seen by clients."""

    id: str
    name: str
    email: str
    role: str
    avatar: Optional[str]
    isEmailVerified: bool
    isActive: bool
    createdAt: Optional[str]


class UserListResponse(BaseModel):
    """Paginated user list."""

    users: List[UserResponse]
    pagination: Pagination


class UserStats(BaseModel):
    """Document counts on a profile."""

    documentsCount: int
    publicDocumentsCount: int


class ProfileResponse(BaseModel):
    """Public profile of a user."""

    user: UserResponse
    stats: UserStats
    recentDocuments: List[DocumentBrief]


class ProfileUpdate(BaseModel):
    """Profile fields a user may change."""

    name: Optional[str] = None
    avatar: Optional[HttpUrl] = None


# ============ Search Schemas ============

class SearchResults(BaseModel):
    """Combined document and user search."""

    query: str
    type: str
    documents: List[DocumentResponse] = Field(default_factory=list)
    users: List[UserSummary] = Field(default_factory=list)
    total: int = 0


class UserSearchResponse(BaseModel):
    """Paginated user search."""

    users: List[UserSummary]
    pagination: Pagination


class Suggestion(BaseModel):
    """Autocomplete entry for a document title or a user name."""

    type: str = Field(..., pattern="^(document|user)$")
    id: str
    title: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
