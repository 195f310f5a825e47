"""
Public hospital directory routes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.responses import success_response
from api.utils import escape_like
from core.utils.pagination import DEFAULT_LIMIT, MAX_LIMIT, paginate
from infrastructure.database.connection import get_db
from infrastructure.database.models.hospital import (
    Hospital,
    HospitalPackage,
    HospitalStatus,
    PackageType,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hospitals", tags=["Hospitals"])


def search_filter(search: str):
    pattern = f"%{escape_like(search.strip())}%"
    return or_(
        Hospital.hospital_name.ilike(pattern, escape="\\"),
        Hospital.hospital_name_english.ilike(pattern, escape="\\"),
        Hospital.location.ilike(pattern, escape="\\"),
    )


async def get_approved_hospital(db: AsyncSession, hospital_id: str) -> Hospital:
    """Load an approved hospital or raise 404."""
    hospital = await db.get(Hospital, hospital_id)
    if hospital is None or hospital.status != HospitalStatus.APPROVED.value:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Hospital not found",
        )
    return hospital


@router.get("")
async def list_hospitals(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    search: Optional[str] = Query(None, max_length=200),
    db: AsyncSession = Depends(get_db),
):
    """List approved hospitals, newest first."""
    query = select(Hospital).where(Hospital.status == HospitalStatus.APPROVED.value)
    if search and search.strip():
        query = query.where(search_filter(search))
    query = query.order_by(Hospital.created_at.desc(), Hospital.id)

    result = await db.execute(query)
    hospitals = [h.to_dict() for h in result.scalars().all()]

    page_data = paginate(hospitals, limit=limit, page=page)
    return success_response(
        page_data.pop("data"),
        pagination=page_data,
    )


@router.get("/{hospital_id}/packages")
async def list_hospital_packages(
    hospital_id: str,
    db: AsyncSession = Depends(get_db),
):
    """
    Active packages of an approved hospital, split into one-time and
    subscription packages.
    """
    hospital = await get_approved_hospital(db, hospital_id)

    result = await db.execute(
        select(HospitalPackage)
        .where(
            HospitalPackage.hospital_id == hospital.id,
            HospitalPackage.is_active.is_(True),
        )
        .order_by(HospitalPackage.package_type, HospitalPackage.duration_months)
    )
    packages = result.scalars().all()

    return success_response(
        {
            "hospital": {"id": hospital.id, "hospital_name": hospital.hospital_name},
            "packages": [p.to_dict() for p in packages],
            "oneTimePackages": [
                p.to_dict() for p in packages if p.package_type == PackageType.ONE_TIME.value
            ],
            "subscriptionPackages": [
                p.to_dict() for p in packages if p.package_type == PackageType.PACKAGE.value
            ],
        }
    )
