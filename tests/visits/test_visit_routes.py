"""
Visit Routes Tests

HTTP surface of the visit ledger: tiers, status codes and response shapes.
"""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user_model import HealthWorker, Mother


API = "/api/v1/visits"


async def _log_visit(client: AsyncClient, headers: dict, patient_id, visit_type: str, **extra):
    payload = {"patient_id": str(patient_id), "type": visit_type, **extra}
    return await client.post(f"{API}/log", json=payload, headers=headers)


@pytest.mark.asyncio
@pytest.mark.visits
class TestLogVisitRoute:
    async def test_log_visit_success(
        self,
        client: AsyncClient,
        mother: Mother,
        health_worker: HealthWorker,
        health_worker_headers: dict,
    ):
        response = await _log_visit(
            client, health_worker_headers, mother.id, "ANC1", notes="First booking"
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Visit logged successfully"
        assert data["visit"]["type"] == "ANC1"
        assert data["visit"]["notes"] == "First booking"
        assert data["visit"]["health_worker_id"] == str(health_worker.id)
        assert data["patient_update"] == {
            "anc_visit_count": 1,
            "is_eligible": False,
            "eligibility_reason": None,
            "incentive_amount": 0,
        }

    async def test_fourth_anc_reports_eligibility(
        self, client: AsyncClient, mother: Mother, health_worker_headers: dict
    ):
        for visit_type in ("ANC1", "ANC2", "ANC3"):
            await _log_visit(client, health_worker_headers, mother.id, visit_type)

        response = await _log_visit(client, health_worker_headers, mother.id, "ANC4")

        assert response.status_code == 201
        update = response.json()["patient_update"]
        assert update["anc_visit_count"] == 4
        assert update["is_eligible"] is True
        assert update["eligibility_reason"] == "ANC4"
        assert update["incentive_amount"] == 5000

    async def test_unknown_visit_type_is_400(
        self, client: AsyncClient, mother: Mother, health_worker_headers: dict
    ):
        response = await _log_visit(client, health_worker_headers, mother.id, "ANC9")

        assert response.status_code == 400

    async def test_missing_type_is_400(
        self, client: AsyncClient, mother: Mother, health_worker_headers: dict
    ):
        response = await client.post(
            f"{API}/log",
            json={"patient_id": str(mother.id)},
            headers=health_worker_headers,
        )

        assert response.status_code == 400

    async def test_unknown_patient_is_404(
        self, client: AsyncClient, health_worker_headers: dict
    ):
        response = await _log_visit(client, health_worker_headers, uuid.uuid4(), "ANC1")

        assert response.status_code == 404

    async def test_missing_token_is_401(self, client: AsyncClient, mother: Mother):
        response = await _log_visit(client, {}, mother.id, "ANC1")

        assert response.status_code == 401

    async def test_mother_cannot_log_visits(
        self, client: AsyncClient, mother: Mother, mother_headers: dict
    ):
        response = await _log_visit(client, mother_headers, mother.id, "ANC1")

        assert response.status_code == 403

    async def test_admin_cannot_log_visits(
        self, client: AsyncClient, mother: Mother, admin_headers: dict
    ):
        response = await _log_visit(client, admin_headers, mother.id, "ANC1")

        assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.visits
class TestPatientVisitRoutes:
    async def test_patient_anc_visits(
        self, client: AsyncClient, mother: Mother, health_worker_headers: dict
    ):
        await _log_visit(
            client, health_worker_headers, mother.id, "ANC2", date="2026-02-02T09:00:00Z"
        )
        await _log_visit(
            client, health_worker_headers, mother.id, "ANC1", date="2026-01-05T09:00:00Z"
        )
        await _log_visit(client, health_worker_headers, mother.id, "POSTNATAL")

        response = await client.get(
            f"{API}/patient/{mother.id}/anc", headers=health_worker_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert [v["type"] for v in data["visits"]] == ["ANC1", "ANC2"]
        assert data["patient"]["full_name"] == "Ama Mensah"
        assert data["patient"]["anc_visit_count"] == 2
        assert data["patient"]["payment_status"] == "pending"

    async def test_patient_all_visits_with_summary(
        self, client: AsyncClient, mother: Mother, health_worker_headers: dict
    ):
        for visit_type in ("ANC1", "DELIVERY", "POSTNATAL"):
            await _log_visit(client, health_worker_headers, mother.id, visit_type)

        response = await client.get(
            f"{API}/patient/{mother.id}/all", headers=health_worker_headers
        )

        assert response.status_code == 200
        summary = response.json()["summary"]
        assert summary == {
            "total_visits": 3,
            "anc_visits": 1,
            "delivery_visits": 1,
            "postnatal_visits": 1,
        }

    async def test_patient_visits_unknown_patient_is_404(
        self, client: AsyncClient, health_worker_headers: dict
    ):
        response = await client.get(
            f"{API}/patient/{uuid.uuid4()}/all", headers=health_worker_headers
        )

        assert response.status_code == 404

    async def test_update_visit(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        mother: Mother,
        health_worker_headers: dict,
    ):
        for visit_type in ("ANC1", "ANC2", "ANC3"):
            await _log_visit(client, health_worker_headers, mother.id, visit_type)
        logged = await _log_visit(client, health_worker_headers, mother.id, "POSTNATAL")
        visit_id = logged.json()["visit"]["id"]

        response = await client.put(
            f"{API}/{visit_id}",
            json={"type": "ANC4", "notes": "Recorded under wrong type"},
            headers=health_worker_headers,
        )

        assert response.status_code == 200
        assert response.json()["type"] == "ANC4"
        assert response.json()["notes"] == "Recorded under wrong type"

        await db_session.refresh(mother)
        assert mother.anc_visit_count == 4
        assert mother.is_beneficiary is True

    async def test_update_unknown_visit_is_404(
        self, client: AsyncClient, health_worker_headers: dict
    ):
        response = await client.put(
            f"{API}/{uuid.uuid4()}", json={"notes": "x"}, headers=health_worker_headers
        )

        assert response.status_code == 404

    async def test_update_with_invalid_type_is_400(
        self, client: AsyncClient, mother: Mother, health_worker_headers: dict
    ):
        logged = await _log_visit(client, health_worker_headers, mother.id, "ANC1")
        visit_id = logged.json()["visit"]["id"]

        response = await client.put(
            f"{API}/{visit_id}", json={"type": "CHECKUP"}, headers=health_worker_headers
        )

        assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.visits
class TestMotherVisitRoutes:
    async def test_my_visits(
        self,
        client: AsyncClient,
        mother: Mother,
        mother_headers: dict,
        health_worker_headers: dict,
    ):
        for visit_type in ("ANC1", "ANC2", "DELIVERY"):
            await _log_visit(client, health_worker_headers, mother.id, visit_type)

        response = await client.get(f"{API}/my-visits", headers=mother_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["summary"]["total_visits"] == 3
        assert data["summary"]["anc_visits"] == 2
        assert len(data["visits"]) == 3

    async def test_health_worker_cannot_read_my_visits(
        self, client: AsyncClient, health_worker_headers: dict
    ):
        response = await client.get(f"{API}/my-visits", headers=health_worker_headers)

        assert response.status_code == 403

    async def test_next_appointment_without_visits(
        self, client: AsyncClient, mother_headers: dict
    ):
        response = await client.get(f"{API}/next-appointment", headers=mother_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "No ANC visit yet. Book your first visit!"
        assert data["next_appointment"] is None
        assert data["visit_count"] == 0

    async def test_next_appointment_after_anc1(
        self,
        client: AsyncClient,
        mother: Mother,
        mother_headers: dict,
        health_worker_headers: dict,
    ):
        await _log_visit(client, health_worker_headers, mother.id, "ANC1")

        response = await client.get(f"{API}/next-appointment", headers=mother_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["visit_count"] == 1
        assert data["last_visit"]["type"] == "ANC1"
        assert data["next_appointment"]["type"] == "ANC2"
        assert data["next_appointment"]["days_from_now"] == 28
