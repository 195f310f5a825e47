"""
Affiliate program routes for referrers.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user
from api.middleware.rate_limit import get_rate_limit, limiter
from api.responses import ValidationError, success_response
from api.schemas.affiliate import ConversionCreateRequest, ReferralRedeemRequest
from core.affiliate import is_valid_referral_code
from infrastructure.database.connection import get_db
from infrastructure.database.models.affiliate import AffiliateConversion
from infrastructure.database.models.user import User
from services.affiliate import (
    find_user_by_referral_code,
    get_affiliate_stats,
    get_pending_commission,
    record_conversion,
    record_referral_signup,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/affiliate", tags=["Affiliate"])


@router.get("")
async def get_affiliate_dashboard(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Referral code, totals and recent referral history for the caller."""
    return success_response(await get_affiliate_stats(db, current_user))


@router.post("")
@limiter.limit(get_rate_limit("affiliate_redeem"))
async def redeem_referral_code(
    request: Request,
    body: ReferralRedeemRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Attach the caller to a referrer after signup."""
    code = (body.referral_code or "").strip().upper()
    if not code:
        raise ValidationError("Referral code is required")
    if not is_valid_referral_code(code):
        raise ValidationError("Invalid referral code format")

    referrer = await find_user_by_referral_code(db, code)
    if referrer is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Referral code not found",
        )

    try:
        conversion, created = await record_referral_signup(db, referrer, current_user)
    except ValueError as e:
        raise ValidationError(str(e))

    if not created:
        return success_response(conversion.to_dict(), message="Conversion already recorded")

    await db.commit()
    return success_response(conversion.to_dict(), message="Referral recorded successfully")


@router.get("/conversions")
async def list_conversions(
    conversion_type: Optional[str] = Query(None, alias="type"),
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(AffiliateConversion).where(
        AffiliateConversion.affiliate_user_id == current_user.id
    )
    if conversion_type:
        query = query.where(AffiliateConversion.conversion_type == conversion_type)
    if status_filter:
        query = query.where(AffiliateConversion.status == status_filter)

    result = await db.execute(
        query.order_by(AffiliateConversion.created_at.desc()).limit(limit).offset(offset)
    )
    conversions = [c.to_dict() for c in result.scalars().all()]
    return success_response(conversions, count=len(conversions))


@router.post("/conversions", status_code=status.HTTP_201_CREATED)
async def create_conversion(
    body: ConversionCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Record a commissionable purchase.

    Replaying the same conversion returns the stored row with ``existing: true``.
    """
    conversion, created = await record_conversion(
        db,
        affiliate_user_id=body.affiliate_user_id,
        referred_user_id=body.referred_user_id,
        conversion_type=body.conversion_type,
        conversion_value=body.conversion_value,
        reference_id=body.reference_id,
        reference_type=body.reference_type,
        metadata=body.metadata,
    )
    if not created:
        return success_response(conversion.to_dict(), existing=True)

    await db.commit()
    logger.info(
        "Conversion %s recorded for affiliate %s", conversion.id, conversion.affiliate_user_id
    )
    return success_response(conversion.to_dict(), status_code=201, existing=False)


@router.get("/pending-commission")
async def pending_commission(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Confirmed commission available for the next payout, net of the platform fee."""
    return success_response(await get_pending_commission(db, current_user.id))
