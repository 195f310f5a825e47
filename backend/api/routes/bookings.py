"""
Customer booking routes.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user
from api.responses import success_response
from api.schemas.booking import BookingCreateRequest
from infrastructure.database.connection import get_db
from infrastructure.database.models.booking import Booking
from infrastructure.database.models.user import User
from services.bookings import (
    BookingTargetNotFound,
    NewBooking,
    create_booking,
    run_booking_follow_ups,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("")
async def list_my_bookings(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's bookings, newest first."""
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == current_user.id)
        .order_by(Booking.created_at.desc())
    )
    return success_response([b.to_dict() for b in result.scalars().all()])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_new_booking(
    body: BookingCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a hospital package.

    The booking is committed first; affiliate, points, notification and email
    follow-ups never fail the request.
    """
    user_id = current_user.id
    try:
        booking, hospital, package = await create_booking(
            db,
            current_user,
            NewBooking(
                hospital_id=body.hospital_id,
                package_id=body.package_id,
                customer_name=body.customer_name.strip(),
                customer_email=str(body.customer_email).lower(),
                customer_phone=body.customer_phone.strip(),
                start_date=body.start_date,
                special_requests=body.special_requests,
                payment_method=body.payment_method,
            ),
        )
    except BookingTargetNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    data = booking.to_dict()
    data["hospital_name"] = hospital.hospital_name
    data["package_name"] = package.name

    await run_booking_follow_ups(db, user_id, booking, hospital, package)

    return success_response(data, status_code=201, message="Booking created successfully")
