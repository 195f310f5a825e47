"""Integration tests for the contact form and health checks."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import ContactMessage

pytestmark = pytest.mark.asyncio

MESSAGE = {
    "name": "Malee",
    "email": "Malee@Example.com",
    "message": "Do you offer weekend health checks?",
}


class TestContact:
    async def test_status(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/contact")
        data = response.json()["data"]
        assert data["provider"] == "resend"
        assert data["configured"] is False
        assert "from_email" in data

    async def test_submit(self, async_client: AsyncClient, db_session: AsyncSession):
        response = await async_client.post("/api/v1/contact", json=MESSAGE)
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Message received. We will get back to you soon."
        assert body["data"]["email_sent"] is True

        stored = (await db_session.execute(select(ContactMessage))).scalar_one()
        assert stored.email == "malee@example.com"
        assert stored.ip_address == "127.0.0.1"

    async def test_stored_when_email_fails(self, async_client: AsyncClient, db_session: AsyncSession):
        with patch(
            "api.routes.contact.email_service.send_contact_email",
            new=AsyncMock(return_value=False),
        ):
            response = await async_client.post("/api/v1/contact", json=MESSAGE)

        assert response.status_code == 201
        assert response.json()["data"]["email_sent"] is False
        stored = (await db_session.execute(select(ContactMessage))).scalar_one()
        assert stored.email_sent is False

    @pytest.mark.parametrize(
        "field,value",
        [
            ("name", "M"),
            ("email", "malee-at-example"),
            ("message", "Too short"),
        ],
    )
    async def test_validation(self, async_client: AsyncClient, field: str, value: str):
        response = await async_client.post("/api/v1/contact", json={**MESSAGE, field: value})
        assert response.status_code == 400
        assert list(response.json()["errors"]) == [field]


class TestHealth:
    async def test_health(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "healthy"

    async def test_db_health(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/health/db")
        assert response.status_code == 200
        assert response.json()["data"]["database"] == "connected"

    async def test_ready(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/health/ready")
        data = response.json()["data"]
        assert data == {"ready": True, "database": "ok", "redis": "not configured"}

    async def test_not_ready_without_database(self, async_client: AsyncClient):
        with patch(
            "api.routes.health._ping_database",
            new=AsyncMock(return_value="error: database check failed"),
        ):
            response = await async_client.get("/api/v1/health/ready")
        assert response.status_code == 503
        assert response.json()["data"]["ready"] is False

    async def test_request_id_echoed(self, async_client: AsyncClient):
        request_id = "3f2b8c1e-1a2b-4c3d-8e4f-5d6e7f8a9b0c"
        response = await async_client.get("/api/v1/health", headers={"X-Request-ID": request_id})
        assert response.headers["X-Request-ID"] == request_id
        assert response.headers["X-Content-Type-Options"] == "nosniff"
