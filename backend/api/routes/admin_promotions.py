"""
Admin promotion management routes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_admin_user
from api.responses import success_response
from api.schemas.hospital import PromotionCreateRequest
from infrastructure.database.connection import get_db
from infrastructure.database.models.admin import AuditAction, AuditTargetType
from infrastructure.database.models.hospital import Hospital, Promotion
from infrastructure.database.models.user import User
from services.audit import create_audit_log

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/promotions", tags=["Admin - Promotions"])


@router.get("")
async def list_promotions(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    hospital_id: Optional[str] = Query(None),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Every promotion, including expired and inactive ones. Highest priority first."""
    query = select(Promotion)
    if is_active is not None:
        query = query.where(Promotion.is_active.is_(is_active))
    if hospital_id:
        query = query.where(Promotion.hospital_id == hospital_id)
    query = query.order_by(Promotion.priority.desc(), Promotion.created_at.desc())

    result = await db.execute(query)
    promotions = [p.to_dict() for p in result.scalars().all()]
    return success_response(promotions, count=len(promotions))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_promotion(
    request: Request,
    body: PromotionCreateRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    if await db.get(Hospital, body.hospital_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Hospital not found",
        )

    promotion = Promotion(**body.model_dump(), current_uses=0)
    db.add(promotion)
    await db.flush()

    await create_audit_log(
        db,
        admin_user,
        AuditAction.PROMOTION_CREATED,
        AuditTargetType.PROMOTION,
        promotion.id,
        f"Created promotion {promotion.title}",
        metadata={"hospital_id": promotion.hospital_id, "discount_type": promotion.discount_type},
        request=request,
    )
    await db.commit()
    logger.info("Admin %s created promotion %s", admin_user.id, promotion.id)
    return success_response(
        promotion.to_dict(), status_code=201, message="Promotion created successfully"
    )
