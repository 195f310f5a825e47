"""
Content moderation routes: user reports and the admin review queue.
"""

import logging
from datetime import UTC, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user
from api.deps_admin import get_current_admin_user
from api.responses import success_response
from api.schemas.engagement import ContentFlagCreateRequest, ContentFlagReviewRequest
from infrastructure.database.connection import get_db
from infrastructure.database.models.admin import AuditAction, AuditTargetType
from infrastructure.database.models.engagement import ContentFlag, FlagStatus
from infrastructure.database.models.user import User
from services.audit import create_audit_log

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/moderation", tags=["Moderation"])
admin_router = APIRouter(prefix="/admin/moderation", tags=["Admin - Moderation"])


@router.post("/flags", status_code=status.HTTP_201_CREATED)
async def flag_content(
    body: ContentFlagCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Report a piece of content. One pending report per user and item."""
    existing = await db.execute(
        select(ContentFlag.id).where(
            ContentFlag.content_type == body.content_type,
            ContentFlag.content_id == body.content_id,
            ContentFlag.reported_by == current_user.id,
            ContentFlag.status == FlagStatus.PENDING.value,
        )
    )
    if existing.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You have already reported this content",
        )

    flag = ContentFlag(
        content_type=body.content_type,
        content_id=body.content_id,
        reason=body.reason,
        description=body.description,
        reported_by=current_user.id,
        status=FlagStatus.PENDING.value,
    )
    db.add(flag)
    await db.commit()
    logger.info("Content flagged: %s/%s", body.content_type, body.content_id)
    return success_response(flag.to_dict(), status_code=201)


@admin_router.get("/flags")
async def list_flags(
    status_filter: Optional[str] = Query(None, alias="status"),
    content_type: Optional[str] = Query(None, alias="contentType"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """Review queue, newest first. ``count`` is the total before paging."""
    filters = []
    if status_filter:
        filters.append(ContentFlag.status == status_filter)
    if content_type:
        filters.append(ContentFlag.content_type == content_type)

    total = await db.scalar(select(func.count()).select_from(ContentFlag).where(*filters))
    result = await db.execute(
        select(ContentFlag)
        .where(*filters)
        .order_by(ContentFlag.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return success_response(
        [f.to_dict() for f in result.scalars().all()],
        count=total or 0,
    )


@admin_router.patch("/flags/{flag_id}")
async def review_flag(
    flag_id: str,
    request: Request,
    body: ContentFlagReviewRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    flag = await db.get(ContentFlag, flag_id)
    if flag is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Flag not found",
        )

    previous_status = flag.status
    flag.status = body.status
    flag.review_notes = body.review_notes
    flag.reviewed_by = admin_user.id
    flag.reviewed_at = datetime.now(UTC)

    await create_audit_log(
        db,
        admin_user,
        AuditAction.FLAG_REVIEWED,
        AuditTargetType.CONTENT_FLAG,
        flag.id,
        f"Flag on {flag.content_type}/{flag.content_id} marked {body.status}",
        metadata={"previous_status": previous_status, "status": body.status},
        request=request,
    )
    await db.commit()
    return success_response(flag.to_dict())
