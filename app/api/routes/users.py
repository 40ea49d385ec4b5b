"""
User profile and administration endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Query

from app.api.deps import ActorDep, AdminUserDep, CurrentUserDep, PageDep, SessionDep
from app.api.formatting import (
    format_document,
    format_document_brief,
    format_user,
    load_users,
    paginate,
)
from app.core.permissions import Actor
from app.models.schemas import (
    DocumentListResponse,
    ProfileResponse,
    ProfileUpdate,
    UserListResponse,
    UserResponse,
    UserStats,
    UserSummary,
)
from app.services.document_service import DocumentService
from app.services.user_service import UserService

router = APIRouter()


@router.get("/", response_model=UserListResponse)
async def list_users(session: SessionDep, admin: AdminUserDep, page: PageDep):
    """List all accounts (admin only)."""
    users, total = await UserService(session).list_users(limit=page.limit, offset=page.offset)
    return UserListResponse(
        users=[format_user(user) for user in users],
        pagination=paginate(page.page, page.limit, total),
    )


@router.get("/search", response_model=list[UserSummary])
async def search_users(
    session: SessionDep,
    current_user: CurrentUserDep,
    q: str = Query(""),
    limit: int = Query(10, ge=1, le=50),
):
    """Find users to @mention. Queries under two characters return nothing."""
    users, _ = await UserService(session).search_users(q, limit=limit)
    return [UserSummary(id=user.id, name=user.name, email=user.email) for user in users]


@router.put("/profile", response_model=UserResponse)
async def update_profile(request: ProfileUpdate, session: SessionDep, current_user: CurrentUserDep):
    """Update the caller's name and/or avatar."""
    user = await UserService(session).update_profile(
        current_user,
        name=request.name,
        avatar=str(request.avatar) if request.avatar else None,
    )
    return format_user(user)


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(user_id: str, session: SessionDep, current_user: CurrentUserDep):
    """A user's profile with document stats and recent public documents."""
    user, documents_count, public_count, recent = await UserService(session).get_profile(user_id)
    return ProfileResponse(
        user=format_user(user),
        stats=UserStats(documentsCount=documents_count, publicDocumentsCount=public_count),
        recentDocuments=[format_document_brief(doc) for doc in recent],
    )


@router.get("/{user_id}/documents", response_model=DocumentListResponse)
async def list_user_documents(
    user_id: str,
    session: SessionDep,
    actor: ActorDep,
    page: PageDep,
    status_filter: Optional[str] = Query(None, alias="status"),
):
    """A user's documents. Other users' private documents are hidden."""
    service = DocumentService(session)
    documents, total = await service.list_user_documents(
        actor, user_id, status=status_filter, limit=page.limit, offset=page.offset
    )
    users = await load_users(service.users, documents)
    return DocumentListResponse(
        documents=[format_document(doc, users) for doc in documents],
        pagination=paginate(page.page, page.limit, total),
    )


@router.get("/{user_id}/collaborations", response_model=DocumentListResponse)
async def list_collaborations(user_id: str, session: SessionDep, actor: ActorDep, page: PageDep):
    """Documents shared with a user (self or admin)."""
    service = DocumentService(session)
    documents, total = await service.list_collaborations(
        actor, user_id, limit=page.limit, offset=page.offset
    )
    users = await load_users(service.users, documents)
    return DocumentListResponse(
        documents=[format_document(doc, users) for doc in documents],
        pagination=paginate(page.page, page.limit, total),
    )


@router.delete("/{user_id}")
async def delete_user(user_id: str, session: SessionDep, admin: AdminUserDep):
    """
    Remove a user (admin only).

    Their documents are soft-deleted and their access to other documents
    is revoked.
    """
    await UserService(session).delete_user(Actor.from_user(admin), user_id)
    return {"status": "deleted", "userId": user_id}
