"""Integration tests for the public directory and admin hospital management."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import AdminAuditLog, Hospital, HospitalPackage

pytestmark = pytest.mark.asyncio


async def _add_hospital(db: AsyncSession, name: str, status: str = "approved", **kwargs) -> Hospital:
    hospital = Hospital(
        hospital_name=name,
        slug=name.lower().replace(" ", "-"),
        contact_name="Contact",
        phone="0200000000",
        email="info@example.com",
        location=kwargs.pop("location", "Bangkok"),
        status=status,
        **kwargs,
    )
    db.add(hospital)
    await db.commit()
    return hospital


class TestPublicDirectory:
    async def test_lists_only_approved(self, async_client: AsyncClient, db_session: AsyncSession):
        await _add_hospital(db_session, "Approved One")
        await _add_hospital(db_session, "Pending One", status="pending")

        response = await async_client.get("/api/v1/hospitals")
        assert response.status_code == 200
        body = response.json()
        names = [h["hospital_name"] for h in body["data"]]
        assert names == ["Approved One"]
        assert body["pagination"]["total"] == 1
        assert body["pagination"]["has_more"] is False

    async def test_pagination(self, async_client: AsyncClient, db_session: AsyncSession):
        for i in range(5):
            await _add_hospital(db_session, f"Hospital {i}")

        response = await async_client.get("/api/v1/hospitals?limit=2&page=2")
        body = response.json()
        assert len(body["data"]) == 2
        assert body["pagination"] == {
            "total": 5,
            "limit": 2,
            "offset": 2,
            "page": 2,
            "has_more": True,
        }

    async def test_search_matches_location(self, async_client: AsyncClient, db_session: AsyncSession):
        await _add_hospital(db_session, "Seaside Clinic", location="Phuket")
        await _add_hospital(db_session, "City Hospital", location="Bangkok")

        response = await async_client.get("/api/v1/hospitals?search=phuket")
        assert [h["hospital_name"] for h in response.json()["data"]] == ["Seaside Clinic"]

    async def test_packages_split_by_type(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        hospital,
        package,
        subscription_package,
    ):
        db_session.add(
            HospitalPackage(
                hospital_id=hospital.id,
                name="Retired Package",
                package_type="one_time",
                price=100,
                is_active=False,
            )
        )
        await db_session.commit()

        response = await async_client.get(f"/api/v1/hospitals/{hospital.id}/packages")
        assert response.status_code == 200
        data = response.json()["data"]
        assert [p["name"] for p in data["oneTimePackages"]] == ["Annual Health Check"]
        assert [p["name"] for p in data["subscriptionPackages"]] == ["Physio Programme"]
        assert len(data["packages"]) == 2

    async def test_packages_of_unapproved_hospital_404(
        self, async_client: AsyncClient, db_session: AsyncSession
    ):
        pending = await _add_hospital(db_session, "Waiting Room", status="pending")
        response = await async_client.get(f"/api/v1/hospitals/{pending.id}/packages")
        assert response.status_code == 404
        assert response.json()["success"] is False


class TestAdminHospitals:
    PAYLOAD = {
        "hospital_name": "Chiang Mai Care",
        "contact_name": "Dr. Lek",
        "phone": "053000000",
        "email": "Info@ChiangMaiCare.co.th",
        "location": "Chiang Mai",
    }

    async def test_create_defaults_to_approved(
        self, async_client: AsyncClient, db_session: AsyncSession, admin_headers: dict
    ):
        response = await async_client.post(
            "/api/v1/admin/hospitals", json=self.PAYLOAD, headers=admin_headers
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "approved"
        assert data["slug"] == "chiang-mai-care"
        assert data["email"] == "info@chiangmaicare.co.th"

        logs = (await db_session.execute(select(AdminAuditLog))).scalars().all()
        assert [log.action for log in logs] == ["hospital_created"]
        assert logs[0].target_id == data["id"]

    async def test_create_makes_slug_unique(self, async_client: AsyncClient, admin_headers: dict):
        first = await async_client.post("/api/v1/admin/hospitals", json=self.PAYLOAD, headers=admin_headers)
        second = await async_client.post("/api/v1/admin/hospitals", json=self.PAYLOAD, headers=admin_headers)
        assert first.json()["data"]["slug"] == "chiang-mai-care"
        assert second.json()["data"]["slug"] == "chiang-mai-care-2"

    async def test_create_requires_fields(self, async_client: AsyncClient, admin_headers: dict):
        response = await async_client.post(
            "/api/v1/admin/hospitals", json={"hospital_name": "Only Name"}, headers=admin_headers
        )
        assert response.status_code == 400
        assert {"contact_name", "phone", "email", "location"} <= set(response.json()["errors"])

    async def test_create_rejects_unknown_status(self, async_client: AsyncClient, admin_headers: dict):
        response = await async_client.post(
            "/api/v1/admin/hospitals",
            json={**self.PAYLOAD, "status": "open"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert "status" in response.json()["errors"]

    async def test_list_returns_count(
        self, async_client: AsyncClient, db_session: AsyncSession, admin_headers: dict
    ):
        await _add_hospital(db_session, "Approved One")
        await _add_hospital(db_session, "Pending One", status="pending")

        response = await async_client.get("/api/v1/admin/hospitals", headers=admin_headers)
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 2
        assert len(body["hospitals"]) == 2

        filtered = await async_client.get(
            "/api/v1/admin/hospitals?status=pending", headers=admin_headers
        )
        assert [h["hospital_name"] for h in filtered.json()["hospitals"]] == ["Pending One"]

    async def test_get_missing_404(self, async_client: AsyncClient, admin_headers: dict):
        response = await async_client.get(
            "/api/v1/admin/hospitals/00000000-0000-0000-0000-000000000000", headers=admin_headers
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Hospital not found"

    async def test_patch_is_partial(
        self, async_client: AsyncClient, db_session: AsyncSession, admin_headers: dict, hospital
    ):
        response = await async_client.patch(
            f"/api/v1/admin/hospitals/{hospital.id}",
            json={"status": "suspended", "hospital_name": "Renamed"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "suspended"
        assert data["hospital_name"] == "Renamed"
        assert data["slug"] == "bangkok-general"
        assert data["location"] == "Bangkok"

        log = (await db_session.execute(select(AdminAuditLog))).scalar_one()
        assert log.action == "hospital_updated"
        assert log.details["fields"] == ["hospital_name", "status"]

    async def test_patch_missing_404(self, async_client: AsyncClient, admin_headers: dict):
        response = await async_client.patch(
            "/api/v1/admin/hospitals/00000000-0000-0000-0000-000000000000",
            json={"status": "approved"},
            headers=admin_headers,
        )
        assert response.status_code == 404

    async def test_delete(
        self, async_client: AsyncClient, db_session: AsyncSession, admin_headers: dict
    ):
        doomed = await _add_hospital(db_session, "Closing Down")
        doomed_id = doomed.id

        response = await async_client.delete(
            f"/api/v1/admin/hospitals/{doomed_id}", headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Hospital deleted successfully"

        remaining = await db_session.execute(select(Hospital).where(Hospital.id == doomed_id))
        assert remaining.scalar_one_or_none() is None

        again = await async_client.delete(
            f"/api/v1/admin/hospitals/{doomed_id}", headers=admin_headers
        )
        assert again.status_code == 404
