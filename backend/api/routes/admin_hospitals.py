"""
Admin hospital management routes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_admin_user
from api.responses import success_response
from api.routes.hospitals import search_filter
from api.schemas.hospital import HospitalCreateRequest, HospitalUpdateRequest
from api.utils import escape_like
from core.utils.text import generate_unique_slug, slugify
from infrastructure.database.connection import get_db
from infrastructure.database.models.admin import AuditAction, AuditTargetType
from infrastructure.database.models.hospital import Hospital
from infrastructure.database.models.user import User
from services.audit import create_audit_log

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/hospitals", tags=["Admin - Hospitals"])


async def _get_hospital_or_404(db: AsyncSession, hospital_id: str) -> Hospital:
    hospital = await db.get(Hospital, hospital_id)
    if hospital is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Hospital not found",
        )
    return hospital


async def _unique_slug(db: AsyncSession, name: str) -> str:
    base = slugify(name) or "hospital"
    result = await db.execute(
        select(Hospital.slug).where(Hospital.slug.like(f"{escape_like(base)}%", escape="\\"))
    )
    return generate_unique_slug(base, set(result.scalars().all()))


@router.get("")
async def list_hospitals(
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=200),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """All hospitals regardless of status, newest first."""
    query = select(Hospital)
    if status_filter:
        query = query.where(Hospital.status == status_filter)
    if search and search.strip():
        query = query.where(search_filter(search))
    query = query.order_by(Hospital.created_at.desc())

    result = await db.execute(query)
    hospitals = [h.to_dict() for h in result.scalars().all()]
    return success_response(count=len(hospitals), hospitals=hospitals)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_hospital(
    request: Request,
    body: HospitalCreateRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    hospital = Hospital(
        **body.model_dump(exclude={"email"}),
        email=str(body.email).lower(),
        slug=await _unique_slug(db, body.hospital_name_english or body.hospital_name),
    )
    db.add(hospital)
    await db.flush()

    await create_audit_log(
        db,
        admin_user,
        AuditAction.HOSPITAL_CREATED,
        AuditTargetType.HOSPITAL,
        hospital.id,
        f"Created hospital {hospital.hospital_name}",
        metadata={"status": hospital.status, "slug": hospital.slug},
        request=request,
    )
    await db.commit()
    logger.info("Admin %s created hospital %s", admin_user.id, hospital.id)
    return success_response(hospital.to_dict(), status_code=201)


@router.get("/{hospital_id}")
async def get_hospital(
    hospital_id: str,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    hospital = await _get_hospital_or_404(db, hospital_id)
    return success_response(hospital.to_dict())


@router.patch("/{hospital_id}")
async def update_hospital(
    hospital_id: str,
    request: Request,
    body: HospitalUpdateRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Partial update. The slug is kept stable across renames."""
    hospital = await _get_hospital_or_404(db, hospital_id)

    changes = body.model_dump(exclude_unset=True)
    if "email" in changes and changes["email"] is not None:
        changes["email"] = str(changes["email"]).lower()
    for field, value in changes.items():
        setattr(hospital, field, value)

    await create_audit_log(
        db,
        admin_user,
        AuditAction.HOSPITAL_UPDATED,
        AuditTargetType.HOSPITAL,
        hospital.id,
        f"Updated hospital {hospital.hospital_name}",
        metadata={"fields": sorted(changes)},
        request=request,
    )
    await db.commit()
    await db.refresh(hospital)
    return success_response(hospital.to_dict())


@router.delete("/{hospital_id}")
async def delete_hospital(
    hospital_id: str,
    request: Request,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    hospital = await _get_hospital_or_404(db, hospital_id)
    name = hospital.hospital_name

    await db.delete(hospital)
    await create_audit_log(
        db,
        admin_user,
        AuditAction.HOSPITAL_DELETED,
        AuditTargetType.HOSPITAL,
        hospital_id,
        f"Deleted hospital {name}",
        request=request,
    )
    await db.commit()
    logger.info("Admin %s deleted hospital %s", admin_user.id, hospital_id)
    return success_response(message="Hospital deleted successfully")
