"""
Shared test fixtures and configuration for pytest.
"""

import os
import pytest
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["SMTP_HOST"] = ""

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.database import Base, get_db_session
from app.db.models import UserModel, DocumentModel
from app.core.auth import hash_password, create_token_pair
from app.core.permissions import Actor
from app.services.notifier import EmailNotifier


# Test database URL (in-memory SQLite for unit tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "testpassword123"

# Hashing is slow; every fixture user shares one hash
_PASSWORD_HASH = hash_password(TEST_PASSWORD)

# Registration order drives mention tie-breaking, so fixture users get
# strictly increasing created_at values
_BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
async def async_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def mock_db_session():
    """Create a mock database session for unit tests."""
    session = AsyncMock(spec=AsyncSession)
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    return session


@pytest.fixture
async def test_client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def sent_emails():
    """Capture outgoing email instead of delivering it."""
    with patch.object(EmailNotifier, "send", new_callable=AsyncMock) as send:
        yield send


# ============ User Fixtures ============

@pytest.fixture
def make_user(db_session):
    """Factory creating verified users with increasing registration times."""
    counter = {"n": 0}

    async def _make_user(
        name: str,
        email: str,
        role: str = "user",
        is_email_verified: bool = True,
    ) -> UserModel:
        counter["n"] += 1
        user = UserModel(
            id=f"{name.lower().replace(' ', '-')}-id",
            email=email,
            name=name,
            password_hash=_PASSWORD_HASH,
            role=role,
            is_email_verified=is_email_verified,
            created_at=_BASE_TIME + timedelta(minutes=counter["n"]),
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make_user


@pytest.fixture
async def alice(make_user) -> UserModel:
    return await make_user("Alice", "alice@example.com")


@pytest.fixture
async def bob(make_user) -> UserModel:
    return await make_user("Bob", "bob@example.com")


@pytest.fixture
async def carol(make_user) -> UserModel:
    return await make_user("Carol", "carol@example.com")


@pytest.fixture
async def admin_user(make_user) -> UserModel:
    return await make_user("Admin", "admin@example.com", role="admin")


def headers_for(user: UserModel) -> dict:
    """Authorization headers carrying an access token for ``user``."""
    tokens = create_token_pair(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {tokens.access_token}"}


@pytest.fixture
def alice_headers(alice) -> dict:
    return headers_for(alice)


@pytest.fixture
def bob_headers(bob) -> dict:
    return headers_for(bob)


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return headers_for(admin_user)


@pytest.fixture
def alice_actor(alice) -> Actor:
    return Actor.from_user(alice)


@pytest.fixture
def bob_actor(bob) -> Actor:
    return Actor.from_user(bob)


@pytest.fixture
def admin_actor(admin_user) -> Actor:
    return Actor.from_user(admin_user)


# ============ Document Fixtures ============

@pytest.fixture
def make_document():
    """In-memory document, not attached to a session."""

    def _make_document(
        author_id: str = "author-1",
        privacy: str = "private",
        title: str = "Onboarding",
        content: str = "<p>Welcome</p>",
        **kwargs,
    ) -> DocumentModel:
        now = datetime.now(timezone.utc)
        return DocumentModel(
            id=kwargs.pop("id", "doc-1"),
            title=title,
            content=content,
            privacy=privacy,
            author_id=author_id,
            created_at=now,
            updated_at=now,
            **kwargs,
        )

    return _make_document
