"""
Scheduled job endpoints, called by an external cron with a shared secret.
"""

import logging
from datetime import UTC, datetime, timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email.resend_adapter import email_service
from api.dependencies import verify_cron_secret
from api.responses import success_response
from infrastructure.database.connection import get_db
from infrastructure.database.models.booking import Booking, BookingStatus
from infrastructure.database.models.hospital import Hospital
from services.notifications import create_notification

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cron",
    tags=["Cron"],
    dependencies=[Depends(verify_cron_secret)],
)


async def send_booking_reminders(db: AsyncSession) -> dict:
    """
    Remind customers of confirmed bookings starting tomorrow.

    Each booking is stamped with ``reminder_sent_at`` once its email goes
    out, so re-running the job the same day sends nothing twice.
    """
    tomorrow = datetime.now(UTC).date() + timedelta(days=1)
    result = await db.execute(
        select(Booking, Hospital.hospital_name)
        .join(Hospital, Hospital.id == Booking.hospital_id)
        .where(
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.start_date == tomorrow,
            Booking.reminder_sent_at.is_(None),
        )
        .order_by(Booking.created_at)
    )
    rows = result.all()

    sent = failed = 0
    for booking, hospital_name in rows:
        ok = await email_service.send_booking_reminder_email(
            to_email=booking.customer_email,
            customer_name=booking.customer_name,
            booking_number=booking.booking_number,
            hospital_name=hospital_name,
            start_date=booking.start_date.isoformat(),
        )
        if not ok:
            failed += 1
            continue

        booking.reminder_sent_at = datetime.now(UTC)
        if booking.user_id:
            await create_notification(
                db,
                booking.user_id,
                "booking_reminder",
                "Appointment tomorrow",
                f"Your appointment at {hospital_name} is tomorrow ({booking.booking_number}).",
                link_url=f"/dashboard/bookings/{booking.id}",
                metadata={"booking_id": booking.id},
            )
        sent += 1

    await db.commit()
    logger.info("Booking reminders: processed=%d sent=%d failed=%d", len(rows), sent, failed)
    return {"processed": len(rows), "sent": sent, "failed": failed}


@router.post("/send-booking-reminders")
async def send_booking_reminders_post(db: AsyncSession = Depends(get_db)):
    return success_response(await send_booking_reminders(db))


@router.get("/send-booking-reminders")
async def send_booking_reminders_get(db: AsyncSession = Depends(get_db)):
    return success_response(await send_booking_reminders(db))
