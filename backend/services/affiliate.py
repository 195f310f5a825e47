"""
Affiliate Service.

Referral resolution, conversion bookkeeping and the payout state machine.
Commission defaults live in core.affiliate; rows in affiliate_commission_rates
override them per conversion type.
"""

import logging
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import String, cast, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.affiliate import (
    PAYOUT_CURRENCY,
    REFERRAL_SIGNUP_POINTS,
    calculate_commission_amount,
    calculate_platform_fee,
    get_commission_rate as get_default_commission_rate,
    is_valid_referral_code,
    referral_code_suffix,
)
from infrastructure.database.models.affiliate import (
    AffiliateCommissionRate,
    AffiliateConversion,
    AffiliatePayout,
    ConversionStatus,
    ConversionType,
    PayoutStatus,
)
from infrastructure.database.models.user import User
from services.gamification import award_points
from services.notifications import create_notification

logger = logging.getLogger(__name__)


class PayoutTransitionError(ValueError):
    """Raised when a payout action is not allowed from its current status."""


# action -> (allowed source statuses, target status)
PAYOUT_TRANSITIONS: dict[str, tuple[tuple[str, ...], str]] = {
    "approve": ((PayoutStatus.PENDING.value,), PayoutStatus.PROCESSING.value),
    "reject": (
        (PayoutStatus.PENDING.value, PayoutStatus.PROCESSING.value),
        PayoutStatus.CANCELLED.value,
    ),
    "complete": ((PayoutStatus.PROCESSING.value,), PayoutStatus.COMPLETED.value),
    "fail": ((PayoutStatus.PROCESSING.value,), PayoutStatus.FAILED.value),
}

# Payout statuses that keep their conversions out of the pending pool
_OPEN_PAYOUT_STATUSES = (
    PayoutStatus.PENDING.value,
    PayoutStatus.PROCESSING.value,
    PayoutStatus.COMPLETED.value,
)

_HISTORY_STATUS = {
    ConversionStatus.PAID.value: "rewarded",
    ConversionStatus.CONFIRMED.value: "completed",
}


# ---------------------------------------------------------------------------
# Commission rates
# ---------------------------------------------------------------------------


async def get_commission_rate(db: AsyncSession, conversion_type: str) -> float:
    """Active override for ``conversion_type``, else the built-in default."""
    result = await db.execute(
        select(AffiliateCommissionRate).where(
            AffiliateCommissionRate.conversion_type == conversion_type,
            AffiliateCommissionRate.is_active.is_(True),
        )
    )
    override = result.scalar_one_or_none()
    if override is not None:
        return override.commission_rate
    return get_default_commission_rate(conversion_type)


# ---------------------------------------------------------------------------
# Referrals
# ---------------------------------------------------------------------------


async def find_user_by_referral_code(db: AsyncSession, code: str) -> Optional[User]:
    """
    Resolve a referral code to its owner by matching the id suffix.

    Returns None for malformed codes and for suffixes that match no user.
    """
    code = (code or "").strip().upper()
    if not is_valid_referral_code(code):
        return None

    suffix = referral_code_suffix(code)
    result = await db.execute(
        select(User).where(cast(User.id, String).ilike(f"%{suffix}")).limit(2)
    )
    candidates = [
        user for user in result.scalars().all() if user.referral_code == code
    ]
    return candidates[0] if candidates else None


async def record_referral_signup(
    db: AsyncSession,
    referrer: User,
    referred_user: User,
    referral_source: str = "direct",
) -> tuple[AffiliateConversion, bool]:
    """
    Record that ``referred_user`` signed up with ``referrer``'s code.

    Idempotent: an existing signup conversion for the pair is returned
    unchanged with ``created=False``.

    A user keeps their first referrer; codes from anyone else are rejected.

    Raises:
        ValueError: On self-referral or when already referred by someone else
    """
    if referrer.id == referred_user.id:
        raise ValueError("You cannot use your own referral code")
    if referred_user.referred_by and referred_user.referred_by != referrer.id:
        raise ValueError("You have already been referred by another user")

    existing = await db.execute(
        select(AffiliateConversion).where(
            AffiliateConversion.affiliate_user_id == referrer.id,
            AffiliateConversion.referred_user_id == referred_user.id,
            AffiliateConversion.conversion_type == ConversionType.SIGNUP.value,
        )
    )
    conversion = existing.scalars().first()
    if conversion is not None:
        return conversion, False

    rate = await get_commission_rate(db, ConversionType.SIGNUP.value)
    now = datetime.now(UTC)
    conversion = AffiliateConversion(
        affiliate_user_id=referrer.id,
        referred_user_id=referred_user.id,
        conversion_type=ConversionType.SIGNUP.value,
        conversion_value=0,
        commission_rate=rate,
        commission_amount=0,
        status=ConversionStatus.CONFIRMED.value,
        affiliate_code=referrer.referral_code,
        referral_source=referral_source,
        confirmed_at=now,
    )
    db.add(conversion)

    referred_user.referred_by = referrer.id

    await award_points(
        db,
        referrer.id,
        REFERRAL_SIGNUP_POINTS,
        "referral",
        f"Referral signup: {referred_user.email}",
        reference_id=referred_user.id,
        reference_type="user",
    )
    await create_notification(
        db,
        referrer.id,
        "referral",
        "New referral",
        f"{referred_user.name} joined with your referral code.",
        link_url="/dashboard/affiliate",
    )
    await db.flush()
    logger.info("Referral signup recorded: %s -> %s", referrer.id, referred_user.id)
    return conversion, True


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------


async def record_conversion(
    db: AsyncSession,
    affiliate_user_id: str,
    referred_user_id: str,
    conversion_type: str,
    conversion_value: float = 0,
    reference_id: Optional[str] = None,
    reference_type: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> tuple[AffiliateConversion, bool]:
    """
    Create a pending conversion with its commission computed from the current rate.

    A conversion with the same affiliate, referred user, type and reference
    is returned as-is with ``created=False``.
    """
    existing = await db.execute(
        select(AffiliateConversion).where(
            AffiliateConversion.affiliate_user_id == affiliate_user_id,
            AffiliateConversion.referred_user_id == referred_user_id,
            AffiliateConversion.conversion_type == conversion_type,
            AffiliateConversion.reference_id.is_(None)
            if reference_id is None
            else AffiliateConversion.reference_id == reference_id,
            AffiliateConversion.reference_type.is_(None)
            if reference_type is None
            else AffiliateConversion.reference_type == reference_type,
        )
    )
    conversion = existing.scalars().first()
    if conversion is not None:
        return conversion, False

    rate = await get_commission_rate(db, conversion_type)
    conversion = AffiliateConversion(
        affiliate_user_id=affiliate_user_id,
        referred_user_id=referred_user_id,
        conversion_type=conversion_type,
        conversion_value=conversion_value,
        commission_rate=rate,
        commission_amount=calculate_commission_amount(conversion_value, rate),
        status=ConversionStatus.PENDING.value,
        reference_id=reference_id,
        reference_type=reference_type,
        extra_data=metadata,
    )
    db.add(conversion)
    await db.flush()
    return conversion, True


async def create_booking_conversion(
    db: AsyncSession, referred_user: User, booking_id: str, booking_value: float
) -> Optional[AffiliateConversion]:
    """Pending booking commission for the user's referrer, if they have one."""
    if not referred_user.referred_by:
        return None
    conversion, _ = await record_conversion(
        db,
        affiliate_user_id=referred_user.referred_by,
        referred_user_id=referred_user.id,
        conversion_type=ConversionType.BOOKING.value,
        conversion_value=booking_value,
        reference_id=booking_id,
        reference_type="booking",
    )
    return conversion


async def confirm_conversions_for_booking(db: AsyncSession, booking_id: str) -> int:
    """Confirm pending conversions attached to a paid booking. Returns the count."""
    result = await db.execute(
        select(AffiliateConversion).where(
            AffiliateConversion.reference_type == "booking",
            AffiliateConversion.reference_id == booking_id,
            AffiliateConversion.status == ConversionStatus.PENDING.value,
        )
    )
    conversions = result.scalars().all()
    now = datetime.now(UTC)
    for conversion in conversions:
        conversion.status = ConversionStatus.CONFIRMED.value
        conversion.confirmed_at = now
    await db.flush()
    return len(conversions)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


async def get_affiliate_stats(db: AsyncSession, user: User, history_limit: int = 20) -> dict:
    result = await db.execute(
        select(AffiliateConversion)
        .where(AffiliateConversion.affiliate_user_id == user.id)
        .order_by(AffiliateConversion.created_at.desc())
    )
    conversions = result.scalars().all()

    earned_statuses = (ConversionStatus.CONFIRMED.value, ConversionStatus.PAID.value)
    total = len(conversions)
    earned = [c for c in conversions if c.status in earned_statuses]

    now = datetime.now(UTC)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    current_month = 0
    for conversion in conversions:
        created_at = conversion.created_at
        if created_at is None:
            continue
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        if created_at >= month_start:
            current_month += 1

    referred_ids = {c.referred_user_id for c in conversions[:history_limit]}
    names: dict[str, str] = {}
    if referred_ids:
        users = await db.execute(select(User).where(User.id.in_(referred_ids)))
        names = {u.id: u.name for u in users.scalars().all()}

    history = [
        {
            "id": c.id,
            "name": names.get(c.referred_user_id, "Unknown"),
            "date": c.created_at.isoformat() if c.created_at else None,
            "status": _HISTORY_STATUS.get(c.status, "pending"),
            "reward": c.commission_amount,
            "type": c.conversion_type,
        }
        for c in conversions[:history_limit]
    ]

    return {
        "referralCode": user.referral_code,
        "totalReferrals": total,
        "totalEarnings": round(sum(c.commission_amount for c in earned), 2),
        "currentMonthReferrals": current_month,
        "conversionRate": round(len(earned) / total * 100) if total else 0,
        "referralHistory": history,
    }


async def get_pending_commission(db: AsyncSession, affiliate_user_id: str) -> dict:
    """
    Confirmed commission not yet attached to an open or completed payout.
    """
    payouts = await db.execute(
        select(AffiliatePayout.related_conversion_ids).where(
            AffiliatePayout.affiliate_user_id == affiliate_user_id,
            AffiliatePayout.status.in_(_OPEN_PAYOUT_STATUSES),
        )
    )
    claimed: set[str] = set()
    for ids in payouts.scalars().all():
        claimed.update(ids or [])

    result = await db.execute(
        select(AffiliateConversion).where(
            AffiliateConversion.affiliate_user_id == affiliate_user_id,
            AffiliateConversion.status == ConversionStatus.CONFIRMED.value,
        )
    )
    unclaimed = [c for c in result.scalars().all() if c.id not in claimed]

    total_amount = round(sum(c.commission_amount for c in unclaimed), 2)
    platform_fee = calculate_platform_fee(total_amount)
    return {
        "total_amount": total_amount,
        "platform_fee": platform_fee,
        "net_amount": round(total_amount - platform_fee, 2),
        "currency": PAYOUT_CURRENCY,
        "conversion_ids": [c.id for c in unclaimed],
    }


# ---------------------------------------------------------------------------
# Payouts
# ---------------------------------------------------------------------------


async def transition_payout(
    db: AsyncSession,
    payout: AffiliatePayout,
    action: str,
    admin_user: User,
    rejection_reason: Optional[str] = None,
    notes: Optional[str] = None,
    transaction_id: Optional[str] = None,
    payment_reference: Optional[str] = None,
) -> AffiliatePayout:
    """
    Apply an admin action to a payout.

    Raises:
        PayoutTransitionError: Unknown action, wrong source status, or a
            rejection without a reason
    """
    if action not in PAYOUT_TRANSITIONS:
        raise PayoutTransitionError(
            f"Invalid action. Supported actions: {', '.join(PAYOUT_TRANSITIONS)}"
        )
    allowed_from, target = PAYOUT_TRANSITIONS[action]
    if payout.status not in allowed_from:
        raise PayoutTransitionError(f"Cannot {action} a payout with status '{payout.status}'")

    now = datetime.now(UTC)
    if action == "approve":
        payout.processed_at = now
        payout.processed_by = admin_user.id
    elif action == "reject":
        if not rejection_reason or not rejection_reason.strip():
            raise PayoutTransitionError("rejection_reason is required")
        payout.rejection_reason = rejection_reason.strip()
    elif action == "complete":
        payout.completed_at = now
        payout.transaction_id = transaction_id
        payout.payment_reference = payment_reference
        if payout.related_conversion_ids:
            result = await db.execute(
                select(AffiliateConversion).where(
                    AffiliateConversion.id.in_(payout.related_conversion_ids)
                )
            )
            for conversion in result.scalars().all():
                conversion.status = ConversionStatus.PAID.value
                conversion.paid_at = now

    if notes is not None:
        payout.notes = notes
    payout.status = target
    await db.flush()

    logger.info("Payout %s: %s -> %s by %s", payout.id, action, target, admin_user.id)
    return payout
