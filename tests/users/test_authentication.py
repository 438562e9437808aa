"""
Authentication Tests

Tests for login, bearer token handling and role tiers.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import TokenManager, get_password_hash, verify_password
from app.models.user_model import HealthWorker, Mother


LOGIN_URL = "/api/v1/users/login"
PROFILE_URL = "/api/v1/users/profile"


@pytest.mark.asyncio
@pytest.mark.auth
class TestLogin:
    """Test login with phone or email."""

    async def test_login_with_phone(self, client: AsyncClient, mother: Mother):
        response = await client.post(
            LOGIN_URL, json={"identifier": "+233201111111", "password": "Test123!@#"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["access_token"]
        assert data["token_type"] == "bearer"
        assert data["user"]["id"] == str(mother.id)
        assert data["user"]["role"] == "mother"

    async def test_login_with_email_is_case_insensitive(
        self, client: AsyncClient, mother: Mother
    ):
        response = await client.post(
            LOGIN_URL, json={"identifier": "AMA@Example.com", "password": "Test123!@#"}
        )

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "ama@example.com"

    async def test_login_sets_last_login(
        self, client: AsyncClient, db_session: AsyncSession, mother: Mother
    ):
        assert mother.last_login_at is None

        await client.post(
            LOGIN_URL, json={"identifier": "+233201111111", "password": "Test123!@#"}
        )

        await db_session.refresh(mother)
        assert mother.last_login_at is not None

    async def test_staff_login_reports_role(
        self, client: AsyncClient, health_worker: HealthWorker
    ):
        response = await client.post(
            LOGIN_URL, json={"identifier": "efua@example.com", "password": "Test123!@#"}
        )

        assert response.status_code == 200
        assert response.json()["user"]["role"] == "health_worker"

    async def test_wrong_password(self, client: AsyncClient, mother: Mother):
        response = await client.post(
            LOGIN_URL, json={"identifier": "+233201111111", "password": "Wrong123!@#"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    async def test_unknown_user(self, client: AsyncClient):
        response = await client.post(
            LOGIN_URL, json={"identifier": "+233209999999", "password": "Test123!@#"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid credentials"

    async def test_inactive_user(
        self, client: AsyncClient, db_session: AsyncSession, mother: Mother
    ):
        mother.is_active = False
        await db_session.commit()

        response = await client.post(
            LOGIN_URL, json={"identifier": "+233201111111", "password": "Test123!@#"}
        )

        assert response.status_code == 401

    async def test_blank_identifier_is_400(self, client: AsyncClient):
        response = await client.post(
            LOGIN_URL, json={"identifier": "   ", "password": "Test123!@#"}
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid input"


@pytest.mark.asyncio
@pytest.mark.auth
class TestBearerTokens:
    """Tokens issued at login resolve to the user on protected routes."""

    async def test_login_token_opens_profile(self, client: AsyncClient, mother: Mother):
        login = await client.post(
            LOGIN_URL, json={"identifier": "+233201111111", "password": "Test123!@#"}
        )
        token = login.json()["access_token"]

        response = await client.get(
            PROFILE_URL, headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 200
        assert response.json()["id"] == str(mother.id)

    async def test_missing_token(self, client: AsyncClient):
        response = await client.get(PROFILE_URL)

        assert response.status_code == 401

    async def test_garbage_token(self, client: AsyncClient):
        response = await client.get(
            PROFILE_URL, headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401

    async def test_expired_token(self, client: AsyncClient, mother: Mother):
        token = TokenManager.create_access_token(
            {"sub": str(mother.id), "role": mother.role},
            expires_delta=timedelta(minutes=-5),
        )

        response = await client.get(
            PROFILE_URL, headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401

    async def test_token_of_inactive_user(
        self, client: AsyncClient, db_session: AsyncSession, mother: Mother
    ):
        headers = {"Authorization": f"Bearer {TokenManager.create_user_token(mother)}"}
        mother.is_active = False
        await db_session.commit()

        response = await client.get(PROFILE_URL, headers=headers)

        assert response.status_code == 401


@pytest.mark.unit
@pytest.mark.auth
class TestTokenManager:
    def test_token_carries_subject_and_role(self):
        token = TokenManager.create_access_token({"sub": "abc", "role": "admin"})

        payload = TokenManager.decode_token(token)

        assert payload["sub"] == "abc"
        assert payload["role"] == "admin"
        assert payload["type"] == "access"

    def test_decode_rejects_tampered_token(self):
        token = TokenManager.create_access_token({"sub": "abc"})

        with pytest.raises(ValueError):
            TokenManager.decode_token(token[:-2] + "xx")


@pytest.mark.asyncio
@pytest.mark.auth
class TestRoleTiers:
    """Each tier only reaches its own routes."""

    async def test_health_worker_cannot_read_mother_profile(
        self, client: AsyncClient, health_worker_headers: dict
    ):
        response = await client.get(PROFILE_URL, headers=health_worker_headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied. Requires patient access"

    async def test_mother_cannot_reach_admin_routes(
        self, client: AsyncClient, mother_headers: dict
    ):
        response = await client.get(
            "/api/v1/users/all-mothers", headers=mother_headers
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied. Requires admin access"

    async def test_admin_is_not_a_health_worker(
        self, client: AsyncClient, admin_headers: dict
    ):
        response = await client.get(
            "/api/v1/visits/patient/00000000-0000-0000-0000-000000000000/all",
            headers=admin_headers,
        )

        assert response.status_code == 403


@pytest.mark.unit
@pytest.mark.auth
class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = get_password_hash("Test123!@#")

        assert hashed != "Test123!@#"
        assert verify_password("Test123!@#", hashed) is True
        assert verify_password("Other123!@#", hashed) is False
