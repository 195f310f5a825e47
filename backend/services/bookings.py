"""
Booking Service.

Booking creation, its best-effort follow-ups, and the admin bulk status update.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email.resend_adapter import email_service
from core.gamification import POINT_VALUES
from core.utils.tokens import generate_booking_number
from infrastructure.database.models.booking import Booking, BookingStatus, PaymentStatus
from infrastructure.database.models.hospital import Hospital, HospitalPackage, HospitalStatus
from infrastructure.database.models.user import User
from services.affiliate import create_booking_conversion
from services.gamification import award_points, record_activity
from services.notifications import create_notification

logger = logging.getLogger(__name__)

# action -> (status, payment_status); None leaves payment_status untouched
BULK_ACTIONS: dict[str, tuple[str, Optional[str]]] = {
    "confirm": (BookingStatus.CONFIRMED.value, None),
    "complete": (BookingStatus.COMPLETED.value, None),
    "cancel": (BookingStatus.CANCELLED.value, PaymentStatus.REFUNDED.value),
}

MAX_BOOKING_NUMBER_ATTEMPTS = 5


class BookingTargetNotFound(LookupError):
    """The hospital or package cannot be booked."""


class UnknownBulkAction(ValueError):
    pass


@dataclass
class NewBooking:
    hospital_id: str
    package_id: str
    customer_name: str
    customer_email: str
    customer_phone: str
    start_date: date
    special_requests: Optional[str] = None
    payment_method: Optional[str] = None


def add_months(start: date, months: int) -> date:
    """Calendar-month addition, clamped to the last day of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


async def _bookable_target(
    db: AsyncSession, hospital_id: str, package_id: str
) -> tuple[Hospital, HospitalPackage]:
    hospital = await db.get(Hospital, hospital_id)
    if hospital is None or hospital.status != HospitalStatus.APPROVED.value:
        raise BookingTargetNotFound("Hospital not found")

    result = await db.execute(
        select(HospitalPackage).where(
            HospitalPackage.id == package_id,
            HospitalPackage.hospital_id == hospital_id,
            HospitalPackage.is_active.is_(True),
        )
    )
    package = result.scalar_one_or_none()
    if package is None:
        raise BookingTargetNotFound("Package not found")
    return hospital, package


async def create_booking(
    db: AsyncSession, user: User, data: NewBooking
) -> tuple[Booking, Hospital, HospitalPackage]:
    """
    Insert a pending booking for ``user`` and commit it.

    The booking number is retried with random digits if it collides.

    Raises:
        BookingTargetNotFound: Hospital not approved, or package inactive or
            not owned by the hospital
    """
    user_id = user.id
    hospital, package = await _bookable_target(db, data.hospital_id, data.package_id)

    end_date = None
    if package.duration_months:
        end_date = add_months(data.start_date, package.duration_months)

    for attempt in range(MAX_BOOKING_NUMBER_ATTEMPTS):
        booking = Booking(
            booking_number=generate_booking_number(randomize=attempt > 0),
            user_id=user_id,
            hospital_id=hospital.id,
            package_id=package.id,
            customer_name=data.customer_name,
            customer_email=data.customer_email,
            customer_phone=data.customer_phone,
            special_requests=data.special_requests,
            payment_method=data.payment_method,
            start_date=data.start_date,
            end_date=end_date,
            price_paid=package.price,
            status=BookingStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
        )
        db.add(booking)
        try:
            await db.commit()
            break
        except IntegrityError:
            await db.rollback()
            if attempt == MAX_BOOKING_NUMBER_ATTEMPTS - 1:
                raise
            logger.warning("Booking number collision, retrying (attempt %d)", attempt + 1)
            hospital, package = await _bookable_target(db, data.hospital_id, data.package_id)

    logger.info("Booking %s created for user %s", booking.booking_number, user_id)
    return booking, hospital, package


async def run_booking_follow_ups(
    db: AsyncSession,
    user_id: str,
    booking: Booking,
    hospital: Hospital,
    package: HospitalPackage,
) -> None:
    """
    Affiliate conversion, points, notification and confirmation email.

    Each step commits on its own. A failing step is logged and rolled back
    without affecting the booking or the other steps.
    """
    booking_id = booking.id
    booking_number = booking.booking_number
    price_paid = booking.price_paid
    start_date = booking.start_date.isoformat()
    customer_email = booking.customer_email
    customer_name = booking.customer_name
    hospital_name = hospital.hospital_name
    package_name = package.name

    async def _conversion():
        referred = await db.get(User, user_id)
        if referred is not None:
            await create_booking_conversion(db, referred, booking_id, price_paid)

    async def _points():
        await award_points(
            db,
            user_id,
            POINT_VALUES["booking"],
            "booking",
            f"Booking {booking_number}",
            reference_id=booking_id,
            reference_type="booking",
        )
        await record_activity(db, user_id)

    async def _notification():
        await create_notification(
            db,
            user_id,
            "booking",
            "Booking received",
            f"Your booking {booking_number} at {hospital_name} has been received.",
            link_url=f"/dashboard/bookings/{booking_id}",
            metadata={"booking_id": booking_id},
        )

    for name, step in (
        ("affiliate conversion", _conversion),
        ("points", _points),
        ("notification", _notification),
    ):
        try:
            await step()
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.warning(
                "Booking %s follow-up '%s' failed: %s",
                booking_number,
                name,
                e,
                extra={"booking_id": booking_id},
            )

    sent = await email_service.send_booking_confirmation_email(
        to_email=customer_email,
        customer_name=customer_name,
        booking_number=booking_number,
        hospital_name=hospital_name,
        package_name=package_name,
        start_date=start_date,
        price=price_paid,
    )
    if not sent:
        logger.warning("Confirmation email for booking %s was not sent", booking_number)


async def bulk_update_bookings(db: AsyncSession, action: str, booking_ids: list[str]) -> int:
    """
    Apply ``action``'s fixed status pair to exactly ``booking_ids``.

    Returns:
        Number of rows updated

    Raises:
        UnknownBulkAction: If ``action`` is not confirm, complete or cancel
    """
    if action not in BULK_ACTIONS:
        raise UnknownBulkAction(action)

    status, payment_status = BULK_ACTIONS[action]
    values: dict = {"status": status, "updated_at": datetime.now(UTC)}
    if payment_status is not None:
        values["payment_status"] = payment_status

    result = await db.execute(
        update(Booking)
        .where(Booking.id.in_(booking_ids))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount or 0
