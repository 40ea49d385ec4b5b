"""
Integration tests for user administration and profiles.
"""

import pytest
from unittest.mock import AsyncMock

from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.models.schemas import DocumentCreate
from app.services.document_service import DocumentService
from app.services.user_service import UserService, like_contains


@pytest.fixture
def users(db_session):
    return UserService(db_session)


@pytest.fixture
def documents(db_session):
    notifier = AsyncMock()
    notifier.send_quietly = AsyncMock(return_value=True)
    return DocumentService(db_session, notifier=notifier)


def test_like_contains_escapes_wildcards():
    assert like_contains("50%_off") == "%50\\%\\_off%"


class TestLookups:
    """Tests for user lookups."""

    @pytest.mark.asyncio
    async def test_email_lookup_ignores_case(self, users, alice):
        assert (await users.get_user_by_email("  ALICE@example.com ")).id == alice.id

    @pytest.mark.asyncio
    async def test_get_users_by_ids(self, users, alice, bob):
        found = await users.get_users_by_ids([alice.id, bob.id, "ghost", None])

        assert set(found) == {alice.id, bob.id}

    @pytest.mark.asyncio
    async def test_fragment_skips_inactive(self, users, db_session, alice, make_user):
        other = await make_user("Alicia", "alicia@example.com")
        alice.is_active = False
        await db_session.flush()

        assert await users.find_user_by_fragment("ali") == other.id

    @pytest.mark.asyncio
    async def test_fragment_without_match(self, users, alice):
        assert await users.find_user_by_fragment("zed") is None
        assert await users.find_user_by_fragment("") is None


class TestProfile:
    """Tests for profiles."""

    @pytest.mark.asyncio
    async def test_profile_counts(self, users, documents, alice_actor):
        await documents.create_document(
            alice_actor, DocumentCreate(title="Open", content="x", privacy="public")
        )
        await documents.create_document(alice_actor, DocumentCreate(title="Closed", content="x"))

        user, total, public, recent = await users.get_profile(alice_actor.user_id)

        assert user.id == alice_actor.user_id
        assert (total, public) == (2, 1)
        assert [doc.title for doc in recent] == ["Open"]

    @pytest.mark.asyncio
    async def test_update_profile(self, users, alice):
        await users.update_profile(alice, name="  Alice Smith ", avatar="https://img.example.com/a.png")

        assert alice.name == "Alice Smith"
        assert alice.avatar == "https://img.example.com/a.png"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["A", "x" * 51, "   "])
    async def test_update_profile_bad_name(self, users, alice, name):
        with pytest.raises(ValidationError):
            await users.update_profile(alice, name=name)


class TestSearchUsers:
    """Tests for search_users."""

    @pytest.mark.asyncio
    async def test_matches_name_and_email(self, users, alice, bob, carol):
        found, total = await users.search_users("example.com")

        assert total == 3
        assert [user.name for user in found] == ["Alice", "Bob", "Carol"]

    @pytest.mark.asyncio
    async def test_short_query(self, users, alice):
        assert await users.search_users("a") == ([], 0)


class TestDeleteUser:
    """Tests for account removal."""

    @pytest.mark.asyncio
    async def test_cascade(self, users, documents, admin_actor, alice_actor, bob, bob_actor):
        authored = await documents.create_document(
            bob_actor, DocumentCreate(title="Bob notes", content="x", privacy="public")
        )
        shared = await documents.create_document(
            alice_actor, DocumentCreate(title="Alice plan", content="x")
        )
        await documents.grant_collaborator(alice_actor, shared.id, bob.id, "edit")

        await users.delete_user(admin_actor, bob.id)

        assert bob.is_active is False
        assert authored.is_deleted is True
        assert shared.collaborators == []
        with pytest.raises(NotFoundError):
            await documents.get_document(alice_actor, authored.id)
        with pytest.raises(NotFoundError):
            await users.get_user(bob.id)
        # a removed user can no longer be mentioned
        assert await users.find_user_by_fragment("bob") is None

    @pytest.mark.asyncio
    async def test_cascade_touches_affected_documents(
        self, users, documents, admin_actor, alice_actor, bob, bob_actor
    ):
        authored = await documents.create_document(
            bob_actor, DocumentCreate(title="Bob notes", content="x")
        )
        shared = await documents.create_document(
            alice_actor, DocumentCreate(title="Alice plan", content="x")
        )
        await documents.grant_collaborator(alice_actor, shared.id, bob.id, "view")
        before = {doc.id: (doc.updated_at, doc.revision) for doc in (authored, shared)}

        await users.delete_user(admin_actor, bob.id)

        for doc in (authored, shared):
            updated_at, revision = before[doc.id]
            assert doc.updated_at >= updated_at
            assert doc.revision == revision + 1

    @pytest.mark.asyncio
    async def test_requires_admin(self, users, alice_actor, bob):
        with pytest.raises(ForbiddenError):
            await users.delete_user(alice_actor, bob.id)

    @pytest.mark.asyncio
    async def test_admin_cannot_delete_self(self, users, admin_actor):
        with pytest.raises(ValidationError):
            await users.delete_user(admin_actor, admin_actor.user_id)

    @pytest.mark.asyncio
    async def test_unknown_user(self, users, admin_actor):
        with pytest.raises(NotFoundError):
            await users.delete_user(admin_actor, "ghost")

    @pytest.mark.asyncio
    async def test_delete_twice(self, users, admin_actor, bob):
        await users.delete_user(admin_actor, bob.id)

        with pytest.raises(NotFoundError):
            await users.delete_user(admin_actor, bob.id)
