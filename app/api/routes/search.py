"""
Search endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Query

from app.api.deps import CurrentUserDep, OptionalActorDep, PageDep, SessionDep
from app.api.formatting import format_document, load_users, paginate
from app.models.schemas import (
    DocumentListResponse,
    SearchResults,
    Suggestion,
    UserSearchResponse,
    UserSummary,
)
from app.services.search_service import SearchService, SearchType

router = APIRouter()


def summarize(users) -> list[UserSummary]:
    return [UserSummary(id=user.id, name=user.name, email=user.email) for user in users]


@router.get("/", response_model=SearchResults)
async def search(
    session: SessionDep,
    actor: OptionalActorDep,
    page: PageDep,
    q: str = Query(""),
    search_type: SearchType = Query(SearchType.ALL, alias="type"),
):
    """Search documents and (for signed-in callers) users."""
    service = SearchService(session)
    documents, users = await service.search(
        actor, q, search_type, limit=page.limit, offset=page.offset
    )
    user_map = await load_users(service.users, documents)
    return SearchResults(
        query=q,
        type=search_type.value,
        documents=[format_document(doc, user_map) for doc in documents],
        users=summarize(users),
        total=len(documents) + len(users),
    )


@router.get("/documents", response_model=DocumentListResponse)
async def search_documents(
    session: SessionDep,
    actor: OptionalActorDep,
    page: PageDep,
    q: str = Query(""),
    status_filter: Optional[str] = Query(None, alias="status"),
    privacy: Optional[str] = Query(None),
):
    """Search documents by title, content and tags."""
    service = SearchService(session)
    documents, total = await service.search_documents(
        actor, q, status=status_filter, privacy=privacy, limit=page.limit, offset=page.offset
    )
    users = await load_users(service.users, documents)
    return DocumentListResponse(
        documents=[format_document(doc, users) for doc in documents],
        pagination=paginate(page.page, page.limit, total),
    )


@router.get("/users", response_model=UserSearchResponse)
async def search_users(
    session: SessionDep,
    current_user: CurrentUserDep,
    page: PageDep,
    q: str = Query(""),
):
    """Search users by name or email."""
    users, total = await SearchService(session).search_users(
        q, limit=page.limit, offset=page.offset
    )
    return UserSearchResponse(
        users=summarize(users),
        pagination=paginate(page.page, page.limit, total),
    )


@router.get("/suggestions", response_model=list[Suggestion])
async def suggestions(
    session: SessionDep,
    actor: OptionalActorDep,
    q: str = Query(""),
    search_type: SearchType = Query(SearchType.DOCUMENTS, alias="type"),
):
    """Autocomplete on document titles and user names."""
    items = await SearchService(session).suggestions(actor, q, search_type)
    return [Suggestion(**item) for item in items]
