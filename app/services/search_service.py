"""
Search across documents and users.

Document results follow the same visibility rule as listings: anonymous
callers see public documents only. User results need an identity.
"""

from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.core.permissions import Actor
from app.db.models import DocumentModel, UserModel
from app.services.document_service import DocumentService, visible_to
from app.services.user_service import MIN_SEARCH_LENGTH, UserService, like_contains

SUGGESTION_LIMIT = 5


class SearchType(str, Enum):
    """What a combined search covers."""

    ALL = "all"
    DOCUMENTS = "documents"
    USERS = "users"


def require_query(query: Optional[str]) -> str:
    query = (query or "").strip()
    if not query:
        raise ValidationError("Empty search query", user_message="Search query is required")
    return query


class SearchService:
    """Service for document and user search."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.documents = DocumentService(session)
        self.users = UserService(session)

    async def search_documents(
        self,
        actor: Optional[Actor],
        query: str,
        status: Optional[str] = None,
        privacy: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[DocumentModel], int]:
        """Documents whose title, content or tags contain any query word."""
        query = require_query(query)
        return await self.documents.list_documents(
            actor,
            status=status,
            search=query,
            privacy=privacy,
            limit=limit,
            offset=offset,
        )

    async def search_users(
        self,
        query: str,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[UserModel], int]:
        """Active users by name or email."""
        query = require_query(query)
        return await self.users.search_users(query, limit=limit, offset=offset)

    async def search(
        self,
        actor: Optional[Actor],
        query: str,
        search_type: SearchType = SearchType.ALL,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[DocumentModel], list[UserModel]]:
        """
        Combined search. Users are only searched for authenticated callers.

        Returns:
            (documents, users), each limited to one page
        """
        query = require_query(query)
        search_type = SearchType(search_type)

        documents: list[DocumentModel] = []
        users: list[UserModel] = []

        if search_type in (SearchType.ALL, SearchType.DOCUMENTS):
            documents, _ = await self.search_documents(actor, query, limit=limit, offset=offset)

        if search_type in (SearchType.ALL, SearchType.USERS) and actor is not None:
            users, _ = await self.users.search_users(query, limit=limit, offset=offset)

        return documents, users

    async def suggestions(
        self,
        actor: Optional[Actor],
        query: str,
        search_type: SearchType = SearchType.DOCUMENTS,
    ) -> list[dict]:
        """
        Autocomplete: up to five document titles and five user names.

        Queries shorter than two characters return nothing.
        """
        query = (query or "").strip()
        if len(query) < MIN_SEARCH_LENGTH:
            return []

        search_type = SearchType(search_type)
        pattern = like_contains(query)
        suggestions: list[dict] = []

        if search_type in (SearchType.ALL, SearchType.DOCUMENTS):
            result = await self.session.execute(
                select(DocumentModel.id, DocumentModel.title)
                .where(DocumentModel.is_deleted.is_(False))
                .where(visible_to(actor.user_id if actor else None))
                .where(DocumentModel.title.ilike(pattern, escape="\\"))
                .order_by(DocumentModel.title.asc())
                .limit(SUGGESTION_LIMIT)
            )
            suggestions.extend(
                {"type": "document", "id": row.id, "title": row.title}
                for row in result.all()
            )

        if search_type in (SearchType.ALL, SearchType.USERS) and actor is not None:
            result = await self.session.execute(
                select(UserModel.id, UserModel.name, UserModel.email)
                .where(UserModel.is_active.is_(True))
                .where(UserModel.name.ilike(pattern, escape="\\"))
                .order_by(UserModel.name.asc())
                .limit(SUGGESTION_LIMIT)
            )
            suggestions.extend(
                {"type": "user", "id": row.id, "name": row.name, "email": row.email}
                for row in result.all()
            )

        return suggestions
