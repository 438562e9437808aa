"""
Clinic Routes Tests
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.clinic_model import Clinic


API = "/api/v1/clinics"


@pytest.mark.asyncio
class TestClinicRoutes:
    async def test_admin_creates_clinic(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            API,
            json={
                "name": "Tema General Maternity",
                "address": "Community 1, Tema",
                "email": "Maternity@Tema.example.com",
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Tema General Maternity"
        assert data["is_active"] is True

    async def test_duplicate_name(
        self, client: AsyncClient, admin_headers: dict, clinic: Clinic
    ):
        response = await client.post(
            API,
            json={"name": "Ridge Maternity", "address": "Somewhere else"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Clinic with this name already exists"

    async def test_blank_address(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            API, json={"name": "Empty Clinic", "address": "  "}, headers=admin_headers
        )

        assert response.status_code == 400

    async def test_health_worker_cannot_create(
        self, client: AsyncClient, health_worker_headers: dict
    ):
        response = await client.post(
            API,
            json={"name": "Rogue Clinic", "address": "Nowhere"},
            headers=health_worker_headers,
        )

        assert response.status_code == 403

    async def test_public_list_shows_active_only(
        self, client: AsyncClient, db_session: AsyncSession, clinic: Clinic
    ):
        db_session.add(Clinic(name="Closed Clinic", address="Old Town", is_active=False))
        await db_session.commit()

        response = await client.get(API)

        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["Ridge Maternity"]
