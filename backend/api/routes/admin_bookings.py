"""
Admin booking management routes.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps_admin import get_current_admin_user
from api.middleware.rate_limit import get_rate_limit, limiter
from api.responses import ValidationError, success_response
from api.schemas.booking import BulkBookingUpdateRequest
from infrastructure.database.connection import get_db
from infrastructure.database.models.admin import AuditAction, AuditTargetType
from infrastructure.database.models.user import User
from services.audit import create_audit_log
from services.bookings import BULK_ACTIONS, bulk_update_bookings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/bookings", tags=["Admin - Bookings"])


@router.post("/bulk-update")
@limiter.limit(get_rate_limit("bulk_update"))
async def bulk_update(
    request: Request,
    body: BulkBookingUpdateRequest,
    admin_user: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Confirm, complete or cancel many bookings at once.

    cancel also marks the payment refunded. Only the listed ids are touched.
    """
    if not body.action or not body.booking_ids:
        raise ValidationError("Missing required fields: action, bookingIds")
    if body.action not in BULK_ACTIONS:
        raise ValidationError(
            f"Invalid action. Supported actions: {', '.join(BULK_ACTIONS)}"
        )

    affected = await bulk_update_bookings(db, body.action, list(dict.fromkeys(body.booking_ids)))

    await create_audit_log(
        db,
        admin_user,
        AuditAction.BOOKINGS_BULK_UPDATED,
        AuditTargetType.BOOKING,
        None,
        f"Bulk {body.action} of {affected} booking(s)",
        metadata={"action": body.action, "booking_ids": body.booking_ids, "affected": affected},
        request=request,
    )
    await db.commit()
    logger.info("Admin %s bulk %s: %d booking(s)", admin_user.id, body.action, affected)

    return success_response(
        {"action": body.action, "affectedCount": affected, "bookingIds": body.booking_ids}
    )
