"""
JWT authentication and one-time token utilities.
"""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from app.config import settings


# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenData(BaseModel):
    """Data extracted from a JWT token."""

    user_id: str
    email: str
    role: str = "user"
    exp: datetime
    token_type: str  # 'access' or 'refresh'


class TokenPair(BaseModel):
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return pwd_context.hash(password)


def _encode(user_id: str, email: str, role: str, token_type: str, expire: datetime) -> str:
    payload = {
        "sub": user_id,
        "email": email,
        "role": role,
        "exp": expire,
        "type": token_type,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, email: str, role: str = "user") -> str:
    """
    Create a JWT access token.

    Args:
        user_id: User's unique ID
        email: User's email
        role: Platform role ('user' or 'admin')

    Returns:
        Encoded JWT token
    """
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=settings.jwt_access_expire_minutes
    )
    return _encode(user_id, email, role, "access", expire)


def create_refresh_token(user_id: str, email: str, role: str = "user") -> str:
    """
    Create a JWT refresh token.

    Args:
        user_id: User's unique ID
        email: User's email
        role: Platform role ('user' or 'admin')

    Returns:
        Encoded JWT token
    """
    expire = datetime.now(timezone.utc) + timedelta(
        days=settings.jwt_refresh_expire_days
    )
    return _encode(user_id, email, role, "refresh", expire)


def create_token_pair(user_id: str, email: str, role: str = "user") -> TokenPair:
    """Create both access and refresh tokens."""
    return TokenPair(
        access_token=create_access_token(user_id, email, role),
        refresh_token=create_refresh_token(user_id, email, role),
    )


def decode_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate a JWT token.

    Args:
        token: Encoded JWT token

    Returns:
        TokenData if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return TokenData(
            user_id=payload["sub"],
            email=payload["email"],
            role=payload.get("role", "user"),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            token_type=payload.get("type", "access"),
        )
    except (JWTError, KeyError):
        return None


def is_token_expired(token_data: TokenData) -> bool:
    """Check if a token is expired."""
    return token_data.exp < datetime.now(timezone.utc)


def generate_one_time_token() -> tuple[str, str]:
    """
    Generate a token for email verification or password reset.

    Returns:
        (raw token to send to the user, SHA-256 hex digest to store)
    """
    raw = secrets.token_hex(20)
    return raw, hash_one_time_token(raw)


def hash_one_time_token(raw: str) -> str:
    """Hash a one-time token for storage and lookup."""
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
