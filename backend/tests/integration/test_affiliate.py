"""Integration tests for the affiliate program and its admin surface."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import (
    AdminAuditLog,
    AffiliateCommissionRate,
    AffiliateConversion,
    AffiliatePayout,
    Notification,
    User,
    UserPoints,
)

pytestmark = pytest.mark.asyncio


async def _conversion(
    db: AsyncSession,
    affiliate: User,
    referred: User,
    amount: float,
    status: str = "confirmed",
    conversion_type: str = "booking",
) -> AffiliateConversion:
    conversion = AffiliateConversion(
        affiliate_user_id=affiliate.id,
        referred_user_id=referred.id,
        conversion_type=conversion_type,
        conversion_value=amount * 10,
        commission_rate=10,
        commission_amount=amount,
        status=status,
    )
    db.add(conversion)
    await db.commit()
    return conversion


async def _payout(db: AsyncSession, affiliate: User, status: str = "pending", conversion_ids=None):
    payout = AffiliatePayout(
        affiliate_user_id=affiliate.id,
        total_amount=100.0,
        platform_fee=5.0,
        net_amount=95.0,
        status=status,
        related_conversion_ids=conversion_ids or [],
    )
    db.add(payout)
    await db.commit()
    return payout


class TestRedeem:
    async def test_redeem_records_signup(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
        other_headers: dict,
    ):
        referrer_id, referral_code, referred_id = test_user.id, test_user.referral_code, other_user.id
        response = await async_client.post(
            "/api/v1/affiliate",
            json={"referralCode": referral_code.lower()},
            headers=other_headers,
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Referral recorded successfully"
        data = response.json()["data"]
        assert data["affiliate_user_id"] == referrer_id
        assert data["conversion_type"] == "signup"
        assert data["status"] == "confirmed"

        db_session.expire_all()
        referred = await db_session.get(User, referred_id)
        assert referred.referred_by == referrer_id

        again = await async_client.post(
            "/api/v1/affiliate",
            json={"referralCode": referral_code},
            headers=other_headers,
        )
        assert again.json()["message"] == "Conversion already recorded"
        assert again.json()["data"]["id"] == data["id"]

    async def test_self_referral_rejected(
        self, async_client: AsyncClient, test_user: User, auth_headers: dict
    ):
        response = await async_client.post(
            "/api/v1/affiliate", json={"referralCode": test_user.referral_code}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["error"] == "You cannot use your own referral code"

    async def test_second_referrer_rejected(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
        admin_user: User,
        other_headers: dict,
    ):
        first_id, second_id, referred_id = test_user.id, admin_user.id, other_user.id
        first = await async_client.post(
            "/api/v1/affiliate", json={"referralCode": test_user.referral_code}, headers=other_headers
        )
        assert first.status_code == 200

        second = await async_client.post(
            "/api/v1/affiliate", json={"referralCode": admin_user.referral_code}, headers=other_headers
        )
        assert second.status_code == 400
        assert second.json()["error"] == "You have already been referred by another user"

        db_session.expire_all()
        signups = (
            await db_session.execute(
                select(AffiliateConversion).where(
                    AffiliateConversion.referred_user_id == referred_id,
                    AffiliateConversion.conversion_type == "signup",
                )
            )
        ).scalars().all()
        assert [c.affiliate_user_id for c in signups] == [first_id]
        assert (await db_session.get(User, referred_id)).referred_by == first_id
        points = await db_session.execute(select(UserPoints).where(UserPoints.user_id == second_id))
        assert points.scalar_one_or_none() is None

    @pytest.mark.parametrize(
        "code,status_code,error",
        [
            ("", 400, "Referral code is required"),
            ("XX12345678", 400, "Invalid referral code format"),
            ("MT1234", 400, "Invalid referral code format"),
            ("MTZZZZZZZZ", 404, "Referral code not found"),
        ],
    )
    async def test_bad_codes(
        self, async_client: AsyncClient, auth_headers: dict, code: str, status_code: int, error: str
    ):
        response = await async_client.post(
            "/api/v1/affiliate", json={"referralCode": code}, headers=auth_headers
        )
        assert response.status_code == status_code
        assert response.json()["error"] == error


class TestDashboard:
    async def test_stats(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
        auth_headers: dict,
    ):
        await _conversion(db_session, test_user, other_user, 350.0, status="confirmed")
        await _conversion(db_session, test_user, other_user, 100.0, status="paid")
        await _conversion(db_session, test_user, other_user, 50.0, status="pending")

        response = await async_client.get("/api/v1/affiliate", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["referralCode"] == test_user.referral_code
        assert data["totalReferrals"] == 3
        assert data["totalEarnings"] == 450.0
        assert data["currentMonthReferrals"] == 3
        assert data["conversionRate"] == 67
        assert {h["status"] for h in data["referralHistory"]} == {"completed", "rewarded", "pending"}
        assert {h["name"] for h in data["referralHistory"]} == {"Other User"}

    async def test_empty_dashboard(self, async_client: AsyncClient, auth_headers: dict):
        data = (await async_client.get("/api/v1/affiliate", headers=auth_headers)).json()["data"]
        assert data["totalReferrals"] == 0
        assert data["conversionRate"] == 0
        assert data["referralHistory"] == []


class TestConversions:
    def _payload(self, affiliate: User, referred: User, **overrides) -> dict:
        payload = {
            "affiliate_user_id": affiliate.id,
            "referred_user_id": referred.id,
            "conversion_type": "product_purchase",
            "conversion_value": 2000,
            "reference_id": "order-1",
            "reference_type": "order",
        }
        payload.update(overrides)
        return payload

    async def test_create_then_replay(
        self, async_client: AsyncClient, test_user: User, other_user: User, auth_headers: dict
    ):
        payload = self._payload(test_user, other_user)
        first = await async_client.post("/api/v1/affiliate/conversions", json=payload, headers=auth_headers)
        assert first.status_code == 201
        assert first.json()["existing"] is False
        data = first.json()["data"]
        assert data["commission_rate"] == 5
        assert data["commission_amount"] == 100.0
        assert data["status"] == "pending"

        replay = await async_client.post("/api/v1/affiliate/conversions", json=payload, headers=auth_headers)
        assert replay.status_code == 200
        assert replay.json()["existing"] is True
        assert replay.json()["data"]["id"] == data["id"]

    async def test_override_rate_applies(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
        auth_headers: dict,
    ):
        db_session.add(AffiliateCommissionRate(conversion_type="product_purchase", commission_rate=12.5))
        await db_session.commit()

        response = await async_client.post(
            "/api/v1/affiliate/conversions",
            json=self._payload(test_user, other_user),
            headers=auth_headers,
        )
        assert response.json()["data"]["commission_amount"] == 250.0

    async def test_inactive_override_ignored(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
        auth_headers: dict,
    ):
        db_session.add(
            AffiliateCommissionRate(
                conversion_type="product_purchase", commission_rate=50, is_active=False
            )
        )
        await db_session.commit()

        response = await async_client.post(
            "/api/v1/affiliate/conversions",
            json=self._payload(test_user, other_user),
            headers=auth_headers,
        )
        assert response.json()["data"]["commission_rate"] == 5

    async def test_rejects_unrecordable_type(
        self, async_client: AsyncClient, test_user: User, other_user: User, auth_headers: dict
    ):
        response = await async_client.post(
            "/api/v1/affiliate/conversions",
            json=self._payload(test_user, other_user, conversion_type="signup"),
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert "conversion_type" in response.json()["errors"]

    async def test_list_filters(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
        auth_headers: dict,
    ):
        await _conversion(db_session, test_user, other_user, 10.0, status="pending")
        await _conversion(db_session, test_user, other_user, 20.0, status="confirmed")
        await _conversion(db_session, other_user, test_user, 30.0, status="confirmed")

        response = await async_client.get(
            "/api/v1/affiliate/conversions?status=confirmed", headers=auth_headers
        )
        body = response.json()
        assert body["count"] == 1
        assert body["data"][0]["commission_amount"] == 20.0


class TestPendingCommission:
    async def test_excludes_claimed_and_unconfirmed(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
        auth_headers: dict,
    ):
        free = await _conversion(db_session, test_user, other_user, 300.0)
        claimed = await _conversion(db_session, test_user, other_user, 500.0)
        released = await _conversion(db_session, test_user, other_user, 200.0)
        await _conversion(db_session, test_user, other_user, 999.0, status="pending")
        await _payout(db_session, test_user, status="processing", conversion_ids=[claimed.id])
        await _payout(db_session, test_user, status="cancelled", conversion_ids=[released.id])

        response = await async_client.get("/api/v1/affiliate/pending-commission", headers=auth_headers)
        data = response.json()["data"]
        assert sorted(data["conversion_ids"]) == sorted([free.id, released.id])
        assert data["total_amount"] == 500.0
        assert data["platform_fee"] == 25.0
        assert data["net_amount"] == 475.0
        assert data["currency"] == "thb"


class TestAdminPayouts:
    async def test_list(
        self, async_client: AsyncClient, db_session: AsyncSession, test_user: User, admin_headers: dict
    ):
        await _payout(db_session, test_user, status="pending")
        await _payout(db_session, test_user, status="completed")

        response = await async_client.get("/api/v1/admin/affiliate/payouts", headers=admin_headers)
        assert response.json()["count"] == 2

        pending = await async_client.get(
            "/api/v1/admin/affiliate/payouts?status=pending", headers=admin_headers
        )
        assert pending.json()["count"] == 1

    @pytest.mark.parametrize(
        "start,action,expected,audit_action",
        [
            ("pending", "approve", "processing", "payout_approved"),
            ("pending", "reject", "cancelled", "payout_rejected"),
            ("processing", "reject", "cancelled", "payout_rejected"),
            ("processing", "complete", "completed", "payout_completed"),
            ("processing", "fail", "failed", "payout_failed"),
        ],
    )
    async def test_allowed_transitions(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        admin_headers: dict,
        start: str,
        action: str,
        expected: str,
        audit_action: str,
    ):
        payout = await _payout(db_session, test_user, status=start)
        response = await async_client.patch(
            f"/api/v1/admin/affiliate/payouts/{payout.id}",
            json={"action": action, "rejection_reason": "Bank details missing"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == expected

        notification = (
            await db_session.execute(select(Notification).where(Notification.user_id == test_user.id))
        ).scalar_one()
        assert notification.type == "payout"

        log = (await db_session.execute(select(AdminAuditLog))).scalar_one()
        assert log.action == audit_action

    @pytest.mark.parametrize(
        "start,action",
        [
            ("processing", "approve"),
            ("completed", "reject"),
            ("pending", "complete"),
            ("pending", "fail"),
            ("failed", "complete"),
            ("cancelled", "approve"),
        ],
    )
    async def test_disallowed_transitions(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        admin_headers: dict,
        start: str,
        action: str,
    ):
        payout = await _payout(db_session, test_user, status=start)
        response = await async_client.patch(
            f"/api/v1/admin/affiliate/payouts/{payout.id}",
            json={"action": action, "rejection_reason": "x"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == f"Cannot {action} a payout with status '{start}'"

    async def test_reject_requires_reason(
        self, async_client: AsyncClient, db_session: AsyncSession, test_user: User, admin_headers: dict
    ):
        payout = await _payout(db_session, test_user)
        response = await async_client.patch(
            f"/api/v1/admin/affiliate/payouts/{payout.id}",
            json={"action": "reject", "rejection_reason": "   "},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "rejection_reason is required"

    async def test_unknown_action(
        self, async_client: AsyncClient, db_session: AsyncSession, test_user: User, admin_headers: dict
    ):
        payout = await _payout(db_session, test_user)
        response = await async_client.patch(
            f"/api/v1/admin/affiliate/payouts/{payout.id}",
            json={"action": "pay"},
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid action")

    async def test_complete_marks_conversions_paid(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
        admin_user: User,
        admin_headers: dict,
    ):
        conversion = await _conversion(db_session, test_user, other_user, 100.0)
        payout = await _payout(db_session, test_user, conversion_ids=[conversion.id])
        conversion_id = conversion.id

        approve = await async_client.patch(
            f"/api/v1/admin/affiliate/payouts/{payout.id}",
            json={"action": "approve"},
            headers=admin_headers,
        )
        assert approve.json()["data"]["processed_by"] == admin_user.id

        complete = await async_client.patch(
            f"/api/v1/admin/affiliate/payouts/{payout.id}",
            json={"action": "complete", "transaction_id": "tr_001"},
            headers=admin_headers,
        )
        data = complete.json()["data"]
        assert data["status"] == "completed"
        assert data["transaction_id"] == "tr_001"
        assert data["completed_at"] is not None

        db_session.expire_all()
        stored = await db_session.get(AffiliateConversion, conversion_id)
        assert stored.status == "paid"
        assert stored.paid_at is not None

    async def test_missing_payout_404(self, async_client: AsyncClient, admin_headers: dict):
        response = await async_client.patch(
            "/api/v1/admin/affiliate/payouts/00000000-0000-0000-0000-000000000000",
            json={"action": "approve"},
            headers=admin_headers,
        )
        assert response.status_code == 404


class TestCommissionRates:
    URL = "/api/v1/admin/affiliate/commission-rates"

    async def test_list_includes_defaults(self, async_client: AsyncClient, admin_headers: dict):
        response = await async_client.get(self.URL, headers=admin_headers)
        body = response.json()
        assert body["data"] == []
        assert body["defaults"]["booking"] == 10
        assert body["defaults"]["subscription"] == 15

    async def test_create_and_duplicate(self, async_client: AsyncClient, admin_headers: dict):
        payload = {"conversion_type": "booking", "commission_rate": 12}
        created = await async_client.post(self.URL, json=payload, headers=admin_headers)
        assert created.status_code == 201
        assert created.json()["data"]["commission_rate"] == 12

        duplicate = await async_client.post(self.URL, json=payload, headers=admin_headers)
        assert duplicate.status_code == 409

    async def test_rate_out_of_range(self, async_client: AsyncClient, admin_headers: dict):
        response = await async_client.post(
            self.URL, json={"conversion_type": "booking", "commission_rate": 150}, headers=admin_headers
        )
        assert response.status_code == 400
        assert "commission_rate" in response.json()["errors"]

    async def test_update_by_conversion_type(
        self, async_client: AsyncClient, db_session: AsyncSession, admin_headers: dict
    ):
        await async_client.post(
            self.URL, json={"conversion_type": "booking", "commission_rate": 12}, headers=admin_headers
        )
        response = await async_client.patch(
            self.URL,
            json={"conversion_type": "booking", "commission_rate": 8, "is_active": False},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["commission_rate"] == 8
        assert data["is_active"] is False

        logs = (await db_session.execute(select(AdminAuditLog))).scalars().all()
        assert [log.action for log in logs] == ["commission_rate_changed", "commission_rate_changed"]

    async def test_update_by_id(self, async_client: AsyncClient, admin_headers: dict):
        created = await async_client.post(
            self.URL, json={"conversion_type": "subscription", "commission_rate": 15}, headers=admin_headers
        )
        rate_id = created.json()["data"]["id"]
        response = await async_client.patch(
            self.URL, json={"id": rate_id, "description": "Launch promo"}, headers=admin_headers
        )
        assert response.json()["data"]["description"] == "Launch promo"
        assert response.json()["data"]["commission_rate"] == 15

    async def test_update_requires_address(self, async_client: AsyncClient, admin_headers: dict):
        response = await async_client.patch(self.URL, json={"commission_rate": 5}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "id or conversion_type is required"

    async def test_update_missing_404(self, async_client: AsyncClient, admin_headers: dict):
        response = await async_client.patch(
            self.URL, json={"conversion_type": "booking", "commission_rate": 5}, headers=admin_headers
        )
        assert response.status_code == 404
