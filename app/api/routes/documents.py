"""
Document CRUD, sharing and version history endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Query, status

from app.api.deps import ActorDep, OptionalActorDep, PageDep, SessionDep
from app.api.formatting import (
    format_document,
    format_permissions,
    format_version,
    load_users,
    paginate,
)
from app.core.exceptions import ValidationError
from app.db.models import DocumentModel
from app.models.schemas import (
    CollaboratorAdd,
    DocumentCreate,
    DocumentListResponse,
    DocumentResponse,
    DocumentUpdate,
    PermissionResponse,
    VersionResponse,
)
from app.services.document_service import DocumentService

router = APIRouter()


async def document_response(service: DocumentService, document) -> DocumentResponse:
    users = await load_users(service.users, [document])
    return format_document(document, users)


@router.get("/", response_model=DocumentListResponse)
async def list_documents(
    session: SessionDep,
    actor: ActorDep,
    page: PageDep,
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
):
    """
    List documents the caller can see: their own, public ones, and ones
    shared with them. Most recently updated first.
    """
    service = DocumentService(session)
    documents, total = await service.list_documents(
        actor,
        status=status_filter,
        search=search,
        limit=page.limit,
        offset=page.offset,
    )
    users = await load_users(service.users, documents)
    return DocumentListResponse(
        documents=[format_document(doc, users) for doc in documents],
        pagination=paginate(page.page, page.limit, total),
    )


@router.post("/", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(request: DocumentCreate, session: SessionDep, actor: ActorDep):
    """
    Create a document.

    Users @mentioned in the content are given view access.
    """
    service = DocumentService(session)
    document = await service.create_document(actor, request)
    return await document_response(service, document)


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str, session: SessionDep, actor: OptionalActorDep):
    """Get a document. Public documents need no authentication."""
    service = DocumentService(session)
    document = await service.get_document(actor, document_id)
    return await document_response(service, document)


@router.put("/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: str,
    request: DocumentUpdate,
    session: SessionDep,
    actor: ActorDep,
):
    """
    Update a document (edit permission required).

    Changing the title or content records the previous state as a new
    version. Send ``expectedVersion`` to reject the edit if someone else
    saved first.
    """
    service = DocumentService(session)
    document = await service.update_document(actor, document_id, request)
    return await document_response(service, document)


@router.delete("/{document_id}")
async def delete_document(document_id: str, session: SessionDep, actor: ActorDep):
    """Soft-delete a document (author or admin)."""
    await DocumentService(session).delete_document(actor, document_id)
    return {"status": "deleted", "documentId": document_id}


@router.get("/{document_id}/versions", response_model=list[VersionResponse])
async def list_versions(document_id: str, session: SessionDep, actor: ActorDep):
    """Version history, oldest first."""
    service = DocumentService(session)
    versions = await service.get_versions(actor, document_id)
    users = await load_users(service.users, extra_ids=[v.created_by_id for v in versions])
    return [format_version(version, users) for version in versions]


@router.get("/{document_id}/versions/{version_number}", response_model=VersionResponse)
async def get_version(
    document_id: str,
    version_number: int,
    session: SessionDep,
    actor: ActorDep,
):
    """A single recorded version."""
    service = DocumentService(session)
    version = await service.get_version(actor, document_id, version_number)
    users = await load_users(service.users, extra_ids=[version.created_by_id])
    return format_version(version, users)


@router.post("/{document_id}/collaborators", response_model=list[PermissionResponse])
async def add_collaborator(
    document_id: str,
    request: CollaboratorAdd,
    session: SessionDep,
    actor: ActorDep,
):
    """
    Share a document (author or admin).

    Identify the collaborator by ``email`` or ``userId``. Sharing again
    with the same user changes their permission level.
    """
    service = DocumentService(session)
    if request.userId:
        await service.grant_collaborator(actor, document_id, request.userId, request.permission)
    elif request.email:
        await service.grant_collaborator_by_email(
            actor, document_id, request.email, request.permission
        )
    else:
        raise ValidationError(
            "Collaborator request without email or userId",
            user_message="Provide the collaborator's email or userId",
        )

    document = await session.get(DocumentModel, document_id)
    users = await load_users(service.users, [document])
    return format_permissions(document, users)


@router.delete("/{document_id}/collaborators/{user_id}")
async def remove_collaborator(
    document_id: str,
    user_id: str,
    session: SessionDep,
    actor: ActorDep,
):
    """Revoke a collaborator's access (author or admin). Unknown grants are ignored."""
    removed = await DocumentService(session).revoke_collaborator(actor, document_id, user_id)
    return {"status": "removed" if removed else "unchanged", "userId": user_id}
