"""
API tests for authentication endpoints.
Tests registration, verification, login, token refresh, and password recovery.
"""

import pytest
from fastapi import status

from app.core.auth import create_token_pair

PASSWORD = "testpassword123"


def emailed_token(sent_emails) -> str:
    """The raw token at the end of the last emailed link."""
    return sent_emails.call_args.args[2].rsplit("/", 1)[-1]


class TestRegisterEndpoint:
    """Tests for POST /api/auth/register."""

    @pytest.mark.asyncio
    async def test_register_success(self, test_client, sent_emails):
        response = await test_client.post(
            "/api/auth/register",
            json={"name": "New User", "email": "newuser@example.com", "password": "secret1"},
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert "verify" in response.json()["message"]
        assert sent_emails.call_args.args[0] == "newuser@example.com"

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, test_client, alice, sent_emails):
        response = await test_client.post(
            "/api/auth/register",
            json={"name": "Again", "email": alice.email, "password": "secret1"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["kind"] == "validation_error"

    @pytest.mark.asyncio
    async def test_register_invalid_email(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"name": "User", "email": "not-an-email", "password": "secret1"},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_register_short_password(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"name": "User", "email": "user@example.com", "password": "short"},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_register_short_name(self, test_client, sent_emails):
        response = await test_client.post(
            "/api/auth/register",
            json={"name": "U", "email": "user@example.com", "password": "secret1"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_verify_then_login(self, test_client, sent_emails):
        await test_client.post(
            "/api/auth/register",
            json={"name": "New User", "email": "newuser@example.com", "password": "secret1"},
        )

        refused = await test_client.post(
            "/api/auth/login",
            json={"email": "newuser@example.com", "password": "secret1"},
        )
        assert refused.status_code == status.HTTP_401_UNAUTHORIZED

        verified = await test_client.get(f"/api/auth/verify-email/{emailed_token(sent_emails)}")
        assert verified.status_code == status.HTTP_200_OK

        response = await test_client.post(
            "/api/auth/login",
            json={"email": "newuser@example.com", "password": "secret1"},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["user"]["isEmailVerified"] is True

    @pytest.mark.asyncio
    async def test_verify_bad_token(self, test_client):
        response = await test_client.get("/api/auth/verify-email/nope")

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestLoginEndpoint:
    """Tests for POST /api/auth/login."""

    @pytest.mark.asyncio
    async def test_login_success(self, test_client, alice):
        response = await test_client.post(
            "/api/auth/login",
            json={"email": alice.email, "password": PASSWORD},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["tokenType"] == "bearer"
        assert data["accessToken"]
        assert data["refreshToken"]
        assert data["user"]["id"] == alice.id
        assert data["user"]["role"] == "user"

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, test_client, alice):
        response = await test_client.post(
            "/api/auth/login",
            json={"email": alice.email, "password": "wrongpassword"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {
            "kind": "unauthenticated",
            "detail": "Invalid email or password",
        }

    @pytest.mark.asyncio
    async def test_login_unknown_user(self, test_client):
        response = await test_client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": PASSWORD},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestRefreshEndpoint:
    """Tests for POST /api/auth/refresh."""

    @pytest.mark.asyncio
    async def test_refresh_success(self, test_client, alice):
        tokens = create_token_pair(alice.id, alice.email)

        response = await test_client.post(
            "/api/auth/refresh",
            json={"refreshToken": tokens.refresh_token},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["accessToken"]

    @pytest.mark.asyncio
    async def test_refresh_with_access_token(self, test_client, alice):
        tokens = create_token_pair(alice.id, alice.email)

        response = await test_client.post(
            "/api/auth/refresh",
            json={"refreshToken": tokens.access_token},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_refresh_inactive_user(self, test_client, db_session, alice):
        tokens = create_token_pair(alice.id, alice.email)
        alice.is_active = False
        await db_session.flush()

        response = await test_client.post(
            "/api/auth/refresh",
            json={"refreshToken": tokens.refresh_token},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestMeEndpoint:
    """Tests for GET /api/auth/me."""

    @pytest.mark.asyncio
    async def test_me(self, test_client, alice, alice_headers):
        response = await test_client.get("/api/auth/me", headers=alice_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["email"] == alice.email

    @pytest.mark.asyncio
    async def test_me_without_token(self, test_client):
        response = await test_client.get("/api/auth/me")

        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)

    @pytest.mark.asyncio
    async def test_me_with_refresh_token(self, test_client, alice):
        tokens = create_token_pair(alice.id, alice.email)

        response = await test_client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {tokens.refresh_token}"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestPasswordEndpoints:
    """Tests for forgot/reset/change password."""

    @pytest.mark.asyncio
    async def test_forgot_and_reset(self, test_client, alice, sent_emails):
        response = await test_client.post(
            "/api/auth/forgot-password", json={"email": alice.email}
        )
        assert response.status_code == status.HTTP_200_OK

        response = await test_client.put(
            f"/api/auth/reset-password/{emailed_token(sent_emails)}",
            json={"password": "brandnew1"},
        )
        assert response.status_code == status.HTTP_200_OK

        login = await test_client.post(
            "/api/auth/login",
            json={"email": alice.email, "password": "brandnew1"},
        )
        assert login.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_forgot_unknown_email(self, test_client, sent_emails):
        response = await test_client.post(
            "/api/auth/forgot-password", json={"email": "ghost@example.com"}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        sent_emails.assert_not_called()

    @pytest.mark.asyncio
    async def test_change_password(self, test_client, alice, alice_headers):
        response = await test_client.put(
            "/api/auth/password",
            headers=alice_headers,
            json={"currentPassword": PASSWORD, "newPassword": "brandnew1"},
        )

        assert response.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(self, test_client, alice, alice_headers):
        response = await test_client.put(
            "/api/auth/password",
            headers=alice_headers,
            json={"currentPassword": "nottheone", "newPassword": "brandnew1"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
