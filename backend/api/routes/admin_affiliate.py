"""
Admin affiliate routes: payout processing and commission rate management.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_admin_user
from api.responses import ValidationError, success_response
from api.schemas.affiliate import (
    CommissionRateCreateRequest,
    CommissionRateUpdateRequest,
    PayoutUpdateRequest,
)
from core.affiliate import DEFAULT_COMMISSION_RATES
from infrastructure.database.connection import get_db
from infrastructure.database.models.admin import AuditAction, AuditTargetType
from infrastructure.database.models.affiliate import AffiliateCommissionRate, AffiliatePayout
from infrastructure.database.models.user import User
from services.affiliate import PayoutTransitionError, transition_payout
from services.audit import create_audit_log
from services.notifications import create_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/affiliate", tags=["Admin - Affiliate"])

_PAYOUT_AUDIT_ACTIONS = {
    "approve": AuditAction.PAYOUT_APPROVED,
    "reject": AuditAction.PAYOUT_REJECTED,
    "complete": AuditAction.PAYOUT_COMPLETED,
    "fail": AuditAction.PAYOUT_FAILED,
}


# ============================================================================
# Payouts
# ============================================================================


@router.get("/payouts")
async def list_payouts(
    status_filter: Optional[str] = Query(None, alias="status"),
    affiliate_user_id: Optional[str] = Query(None),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(AffiliatePayout)
    if status_filter:
        query = query.where(AffiliatePayout.status == status_filter)
    if affiliate_user_id:
        query = query.where(AffiliatePayout.affiliate_user_id == affiliate_user_id)

    result = await db.execute(query.order_by(AffiliatePayout.created_at.desc()))
    payouts = [p.to_dict() for p in result.scalars().all()]
    return success_response(payouts, count=len(payouts))


@router.patch("/payouts/{payout_id}")
async def update_payout(
    payout_id: str,
    request: Request,
    body: PayoutUpdateRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Move a payout through approve, reject, complete or fail."""
    payout = await db.get(AffiliatePayout, payout_id)
    if payout is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payout not found",
        )

    previous_status = payout.status
    try:
        await transition_payout(
            db,
            payout,
            body.action,
            admin_user,
            rejection_reason=body.rejection_reason,
            notes=body.notes,
            transaction_id=body.transaction_id,
            payment_reference=body.payment_reference,
        )
    except PayoutTransitionError as e:
        raise ValidationError(str(e))

    await create_audit_log(
        db,
        admin_user,
        _PAYOUT_AUDIT_ACTIONS[body.action],
        AuditTargetType.PAYOUT,
        payout.id,
        f"Payout {body.action}: {previous_status} -> {payout.status}",
        metadata={
            "previous_status": previous_status,
            "status": payout.status,
            "net_amount": payout.net_amount,
        },
        request=request,
    )
    await create_notification(
        db,
        payout.affiliate_user_id,
        "payout",
        "Payout update",
        f"Your payout of {payout.net_amount:.2f} {payout.currency.upper()} is now {payout.status}.",
        link_url="/dashboard/affiliate",
        metadata={"payout_id": payout.id, "status": payout.status},
    )
    await db.commit()
    return success_response(payout.to_dict())


# ============================================================================
# Commission rates
# ============================================================================


@router.get("/commission-rates")
async def list_commission_rates(
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Stored overrides plus the built-in defaults they replace."""
    result = await db.execute(
        select(AffiliateCommissionRate).order_by(AffiliateCommissionRate.conversion_type)
    )
    return success_response(
        [r.to_dict() for r in result.scalars().all()],
        defaults=DEFAULT_COMMISSION_RATES,
    )


@router.post("/commission-rates", status_code=status.HTTP_201_CREATED)
async def create_commission_rate(
    request: Request,
    body: CommissionRateCreateRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    existing = await db.execute(
        select(AffiliateCommissionRate.id).where(
            AffiliateCommissionRate.conversion_type == body.conversion_type
        )
    )
    if existing.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A commission rate for this conversion type already exists",
        )

    rate = AffiliateCommissionRate(
        conversion_type=body.conversion_type,
        commission_rate=body.commission_rate,
        description=body.description,
        is_active=body.is_active,
    )
    db.add(rate)
    await db.flush()

    await create_audit_log(
        db,
        admin_user,
        AuditAction.COMMISSION_RATE_CHANGED,
        AuditTargetType.COMMISSION_RATE,
        rate.id,
        f"Set {body.conversion_type} commission to {body.commission_rate}%",
        metadata={"conversion_type": body.conversion_type, "commission_rate": body.commission_rate},
        request=request,
    )
    await db.commit()
    return success_response(rate.to_dict(), status_code=201)


@router.patch("/commission-rates")
async def update_commission_rate(
    request: Request,
    body: CommissionRateUpdateRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Update a rate addressed by ``id`` or ``conversion_type``."""
    if body.id:
        query = select(AffiliateCommissionRate).where(AffiliateCommissionRate.id == body.id)
    elif body.conversion_type:
        query = select(AffiliateCommissionRate).where(
            AffiliateCommissionRate.conversion_type == body.conversion_type
        )
    else:
        raise ValidationError("id or conversion_type is required")

    result = await db.execute(query)
    rate = result.scalar_one_or_none()
    if rate is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Commission rate not found",
        )

    previous_rate = rate.commission_rate
    if body.commission_rate is not None:
        rate.commission_rate = body.commission_rate
    if body.description is not None:
        rate.description = body.description
    if body.is_active is not None:
        rate.is_active = body.is_active

    await create_audit_log(
        db,
        admin_user,
        AuditAction.COMMISSION_RATE_CHANGED,
        AuditTargetType.COMMISSION_RATE,
        rate.id,
        f"Updated {rate.conversion_type} commission rate",
        metadata={
            "previous_rate": previous_rate,
            "commission_rate": rate.commission_rate,
            "is_active": rate.is_active,
        },
        request=request,
    )
    await db.commit()
    await db.refresh(rate)
    return success_response(rate.to_dict())
