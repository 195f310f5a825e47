"""
Public promotion routes.
"""

from datetime import UTC, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.responses import ValidationError, success_response
from api.routes.hospitals import get_approved_hospital
from infrastructure.database.connection import get_db
from infrastructure.database.models.hospital import Promotion

router = APIRouter(prefix="/promotions", tags=["Promotions"])


@router.get("/active")
async def active_promotions(
    hospital_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Promotions currently usable at a hospital: active, typed, inside their
    date window and not used up. Highest priority first.
    """
    if not hospital_id:
        raise ValidationError("hospital_id is required")
    hospital = await get_approved_hospital(db, hospital_id)

    now = datetime.now(UTC)
    result = await db.execute(
        select(Promotion)
        .where(
            Promotion.hospital_id == hospital.id,
            Promotion.is_active.is_(True),
            Promotion.discount_type.is_not(None),
            or_(Promotion.start_date.is_(None), Promotion.start_date <= now),
            or_(Promotion.end_date.is_(None), Promotion.end_date >= now),
            or_(Promotion.max_uses.is_(None), Promotion.current_uses < Promotion.max_uses),
        )
        .order_by(Promotion.priority.desc(), Promotion.created_at.desc())
    )
    promotions = [p.to_dict() for p in result.scalars().all()]
    return success_response(promotions, count=len(promotions))
