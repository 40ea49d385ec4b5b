"""
API route dependencies.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.auth import decode_token, is_token_expired
from app.core.permissions import Actor
from app.db.database import get_db_session
from app.db.models import UserModel
from app.services.user_service import UserService


# HTTP Bearer scheme for JWT
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """
    Dependency to get current authenticated user.

    Requires valid JWT access token.
    """
    token_data = decode_token(credentials.credentials)

    if not token_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if is_token_expired(token_data):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if token_data.token_type != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await UserService(session).get_user_by_id(token_data.user_id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is deactivated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    session: AsyncSession = Depends(get_db_session),
) -> Optional[UserModel]:
    """
    Optional authentication dependency.

    Returns user if authenticated, None otherwise.
    """
    if not credentials:
        return None

    token_data = decode_token(credentials.credentials)
    if not token_data or is_token_expired(token_data):
        return None

    if token_data.token_type != "access":
        return None

    user = await UserService(session).get_user_by_id(token_data.user_id)
    if not user or not user.is_active:
        return None

    return user


def require_admin(current_user: UserModel = Depends(get_current_user)) -> UserModel:
    """Restrict a route to platform admins."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return current_user


def get_actor(current_user: UserModel = Depends(get_current_user)) -> Actor:
    """The authenticated caller as an explicit actor."""
    return Actor.from_user(current_user)


def get_optional_actor(
    current_user: Optional[UserModel] = Depends(get_optional_user),
) -> Optional[Actor]:
    """The caller as an actor, or None when anonymous."""
    return Actor.from_user(current_user) if current_user else None


class PageParams:
    """``page``/``limit`` query parameters, 1-indexed."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    ):
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# Dependency annotations
SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
CurrentUserDep = Annotated[UserModel, Depends(get_current_user)]
AdminUserDep = Annotated[UserModel, Depends(require_admin)]
ActorDep = Annotated[Actor, Depends(get_actor)]
OptionalActorDep = Annotated[Optional[Actor], Depends(get_optional_actor)]
PageDep = Annotated[PageParams, Depends(PageParams)]
