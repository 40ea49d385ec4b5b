"""
API tests for document endpoints.
Tests CRUD, sharing, mentions and version history over HTTP.
"""

import pytest
from fastapi import status


async def create(test_client, headers, **overrides) -> dict:
    body = {"title": "Runbook", "content": "<p>Steps</p>"}
    body.update(overrides)
    response = await test_client.post("/api/documents/", json=body, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


class TestCreateDocument:
    """Tests for POST /api/documents/."""

    @pytest.mark.asyncio
    async def test_create(self, test_client, alice, alice_headers):
        data = await create(test_client, alice_headers, tags=["ops"])

        assert data["title"] == "Runbook"
        assert data["status"] == "draft"
        assert data["privacy"] == "private"
        assert data["tags"] == ["ops"]
        assert data["author"] == {"id": alice.id, "name": alice.name, "email": alice.email}
        assert data["currentVersion"] == 1

    @pytest.mark.asyncio
    async def test_create_with_mentions(self, test_client, alice_headers, bob, carol):
        data = await create(
            test_client, alice_headers, content="Welcome @bob and @carol, again @bob"
        )

        assert sorted(c["id"] for c in data["collaborators"]) == sorted([bob.id, carol.id])
        assert {p["permission"] for p in data["permissions"]} == {"view"}
        assert len(data["mentions"]) == 2

    @pytest.mark.asyncio
    async def test_create_requires_auth(self, test_client):
        response = await test_client.post(
            "/api/documents/", json={"title": "x", "content": "y"}
        )

        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)

    @pytest.mark.asyncio
    async def test_create_empty_title(self, test_client, alice_headers):
        response = await test_client.post(
            "/api/documents/", json={"title": " ", "content": "y"}, headers=alice_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["kind"] == "validation_error"


class TestGetDocument:
    """Tests for GET /api/documents/{id}."""

    @pytest.mark.asyncio
    async def test_private_forbidden_until_shared(
        self, test_client, alice_headers, bob, bob_headers, sent_emails
    ):
        doc = await create(test_client, alice_headers)
        url = f"/api/documents/{doc['id']}"

        response = await test_client.get(url, headers=bob_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["kind"] == "forbidden"

        response = await test_client.post(
            f"{url}/collaborators",
            json={"userId": bob.id, "permission": "edit"},
            headers=alice_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        assert [p["user"]["id"] for p in response.json()] == [bob.id]
        sent_emails.assert_awaited_once()

        response = await test_client.get(url, headers=bob_headers)
        assert response.status_code == status.HTTP_200_OK

        response = await test_client.put(url, json={"title": "Runbook v2"}, headers=bob_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["currentVersion"] == doc["currentVersion"] + 1
        assert response.json()["lastModifiedBy"]["id"] == bob.id

    @pytest.mark.asyncio
    async def test_private_anonymous(self, test_client, alice_headers):
        doc = await create(test_client, alice_headers)

        response = await test_client.get(f"/api/documents/{doc['id']}")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_public_anonymous(self, test_client, alice_headers):
        doc = await create(test_client, alice_headers, privacy="public")

        response = await test_client.get(f"/api/documents/{doc['id']}")

        assert response.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_not_found(self, test_client, alice_headers):
        response = await test_client.get("/api/documents/missing", headers=alice_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"kind": "not_found", "detail": "Document not found"}


class TestListDocuments:
    """Tests for GET /api/documents/."""

    @pytest.mark.asyncio
    async def test_list_visible(self, test_client, alice_headers, bob_headers):
        await create(test_client, alice_headers, title="Alice private")
        await create(test_client, alice_headers, title="Alice public", privacy="public")
        await create(test_client, bob_headers, title="Bob private")

        response = await test_client.get("/api/documents/", headers=bob_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert {d["title"] for d in data["documents"]} == {"Alice public", "Bob private"}
        assert data["pagination"] == {"page": 1, "limit": 10, "total": 2, "pages": 1}

    @pytest.mark.asyncio
    async def test_list_pagination(self, test_client, alice_headers):
        for n in range(3):
            await create(test_client, alice_headers, title=f"Doc {n}")

        response = await test_client.get(
            "/api/documents/", params={"page": 2, "limit": 2}, headers=alice_headers
        )

        data = response.json()
        assert len(data["documents"]) == 1
        assert data["pagination"]["pages"] == 2


class TestUpdateDocument:
    """Tests for PUT /api/documents/{id}."""

    @pytest.mark.asyncio
    async def test_stale_expected_version(self, test_client, alice_headers):
        doc = await create(test_client, alice_headers)
        url = f"/api/documents/{doc['id']}"
        await test_client.put(url, json={"content": "second"}, headers=alice_headers)

        response = await test_client.put(
            url, json={"content": "third", "expectedVersion": 1}, headers=alice_headers
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["kind"] == "conflict"

    @pytest.mark.asyncio
    async def test_viewer_cannot_edit(self, test_client, alice_headers, bob_headers, bob):
        doc = await create(test_client, alice_headers, content="hi @bob")

        response = await test_client.put(
            f"/api/documents/{doc['id']}", json={"title": "Mine now"}, headers=bob_headers
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestVersions:
    """Tests for version history endpoints."""

    @pytest.mark.asyncio
    async def test_history(self, test_client, alice, alice_headers):
        doc = await create(test_client, alice_headers, content="one")
        url = f"/api/documents/{doc['id']}"
        await test_client.put(
            url, json={"content": "two", "changeDescription": "fix"}, headers=alice_headers
        )
        await test_client.put(url, json={"content": "three"}, headers=alice_headers)

        response = await test_client.get(f"{url}/versions", headers=alice_headers)

        versions = response.json()
        assert [v["versionNumber"] for v in versions] == [2, 3]
        assert [v["content"] for v in versions] == ["one", "two"]
        assert versions[0]["changeDescription"] == "fix"
        assert versions[0]["createdBy"]["id"] == alice.id

        single = await test_client.get(f"{url}/versions/3", headers=alice_headers)
        assert single.json()["content"] == "two"

        missing = await test_client.get(f"{url}/versions/9", headers=alice_headers)
        assert missing.status_code == status.HTTP_404_NOT_FOUND


class TestDeleteDocument:
    """Tests for DELETE /api/documents/{id}."""

    @pytest.mark.asyncio
    async def test_soft_delete(self, test_client, alice_headers):
        doc = await create(test_client, alice_headers)
        url = f"/api/documents/{doc['id']}"

        response = await test_client.delete(url, headers=alice_headers)
        assert response.json() == {"status": "deleted", "documentId": doc["id"]}

        assert (await test_client.get(url, headers=alice_headers)).status_code == 404
        assert (await test_client.delete(url, headers=alice_headers)).status_code == 404

    @pytest.mark.asyncio
    async def test_non_author_cannot_delete(self, test_client, alice_headers, bob_headers):
        doc = await create(test_client, alice_headers, privacy="public")

        response = await test_client.delete(f"/api/documents/{doc['id']}", headers=bob_headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_admin_can_delete(self, test_client, alice_headers, admin_headers):
        doc = await create(test_client, alice_headers)

        response = await test_client.delete(f"/api/documents/{doc['id']}", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK


class TestCollaborators:
    """Tests for collaborator endpoints."""

    @pytest.mark.asyncio
    async def test_add_by_email_and_remove(self, test_client, alice_headers, bob, sent_emails):
        doc = await create(test_client, alice_headers)
        url = f"/api/documents/{doc['id']}/collaborators"

        response = await test_client.post(
            url, json={"email": bob.email, "permission": "view"}, headers=alice_headers
        )
        assert [p["permission"] for p in response.json()] == ["view"]

        response = await test_client.delete(f"{url}/{bob.id}", headers=alice_headers)
        assert response.json() == {"status": "removed", "userId": bob.id}

        response = await test_client.delete(f"{url}/{bob.id}", headers=alice_headers)
        assert response.json() == {"status": "unchanged", "userId": bob.id}

    @pytest.mark.asyncio
    async def test_add_without_target(self, test_client, alice_headers):
        doc = await create(test_client, alice_headers)

        response = await test_client.post(
            f"/api/documents/{doc['id']}/collaborators",
            json={"permission": "view"},
            headers=alice_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_add_invalid_level(self, test_client, alice_headers, bob):
        doc = await create(test_client, alice_headers)

        response = await test_client.post(
            f"/api/documents/{doc['id']}/collaborators",
            json={"userId": bob.id, "permission": "owner"},
            headers=alice_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
