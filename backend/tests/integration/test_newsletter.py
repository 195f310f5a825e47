"""Integration tests for newsletter subscribe and unsubscribe."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import NewsletterSubscription

pytestmark = pytest.mark.asyncio

SUBSCRIBE = "/api/v1/newsletter/subscribe"
UNSUBSCRIBE = "/api/v1/newsletter/unsubscribe"


async def _subscription(db: AsyncSession, email: str) -> NewsletterSubscription:
    db.expire_all()
    result = await db.execute(
        select(NewsletterSubscription).where(NewsletterSubscription.email == email)
    )
    return result.scalar_one()


class TestSubscribe:
    async def test_new_subscription(self, async_client: AsyncClient, db_session: AsyncSession):
        response = await async_client.post(
            SUBSCRIBE, json={"email": "  Reader@Example.com ", "source": "footer"}
        )
        assert response.status_code == 201
        assert response.json()["message"] == "Subscribed successfully"

        subscription = await _subscription(db_session, "reader@example.com")
        assert subscription.is_active is True
        assert subscription.source == "footer"
        assert len(subscription.unsubscribe_token) == 64
        assert subscription.preferences["weekly_digest"] is True

    async def test_already_subscribed(self, async_client: AsyncClient):
        await async_client.post(SUBSCRIBE, json={"email": "reader@example.com"})
        response = await async_client.post(SUBSCRIBE, json={"email": "reader@example.com"})
        assert response.status_code == 200
        assert response.json()["message"] == "Already subscribed"

    async def test_resubscribe_rotates_token(
        self, async_client: AsyncClient, db_session: AsyncSession
    ):
        await async_client.post(SUBSCRIBE, json={"email": "reader@example.com"})
        old_token = (await _subscription(db_session, "reader@example.com")).unsubscribe_token
        await async_client.post(UNSUBSCRIBE, json={"token": old_token})

        response = await async_client.post(
            SUBSCRIBE, json={"email": "reader@example.com", "preferences": {"promotions": False}}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Resubscribed successfully"

        subscription = await _subscription(db_session, "reader@example.com")
        assert subscription.is_active is True
        assert subscription.unsubscribed_at is None
        assert subscription.unsubscribe_token != old_token
        assert subscription.preferences["promotions"] is False
        assert subscription.preferences["events"] is True

    async def test_invalid_email(self, async_client: AsyncClient):
        response = await async_client.post(SUBSCRIBE, json={"email": "not-an-email"})
        assert response.status_code == 400
        assert response.json()["errors"]["email"] == ["Invalid email address"]

    async def test_rate_limited(self, async_client: AsyncClient):
        for i in range(5):
            ok = await async_client.post(SUBSCRIBE, json={"email": f"reader{i}@example.com"})
            assert ok.status_code == 201

        response = await async_client.post(SUBSCRIBE, json={"email": "reader9@example.com"})
        assert response.status_code == 429
        body = response.json()
        assert body["success"] is False
        assert body["retryAfter"] > 0
        assert "Retry-After" in response.headers


class TestUnsubscribe:
    async def test_by_token_twice(self, async_client: AsyncClient, db_session: AsyncSession):
        await async_client.post(SUBSCRIBE, json={"email": "reader@example.com"})
        token = (await _subscription(db_session, "reader@example.com")).unsubscribe_token

        first = await async_client.post(UNSUBSCRIBE, json={"token": token})
        assert first.status_code == 200
        assert first.json()["message"] == "Unsubscribed successfully"

        second = await async_client.post(UNSUBSCRIBE, json={"token": token})
        assert second.status_code == 200
        assert second.json()["message"] == "Already unsubscribed"

        subscription = await _subscription(db_session, "reader@example.com")
        assert subscription.is_active is False
        assert subscription.unsubscribed_at is not None

    async def test_by_email(self, async_client: AsyncClient):
        await async_client.post(SUBSCRIBE, json={"email": "reader@example.com"})
        response = await async_client.post(UNSUBSCRIBE, json={"email": "READER@example.com"})
        assert response.status_code == 200
        assert response.json()["message"] == "Unsubscribed successfully"

    async def test_requires_token_or_email(self, async_client: AsyncClient):
        response = await async_client.post(UNSUBSCRIBE, json={})
        assert response.status_code == 400
        assert response.json()["error"] == "Token or email is required"

    async def test_missing_body_asks_for_token_or_email(self, async_client: AsyncClient):
        response = await async_client.post(UNSUBSCRIBE)
        assert response.status_code == 400
        assert response.json()["error"] == "Token or email is required"

    async def test_malformed_token(self, async_client: AsyncClient):
        response = await async_client.post(UNSUBSCRIBE, json={"token": "abc123"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid unsubscribe token"

    async def test_unknown_subscription_404(self, async_client: AsyncClient):
        response = await async_client.post(UNSUBSCRIBE, json={"token": "a" * 64})
        assert response.status_code == 404
        assert response.json()["error"] == "Subscription not found"
