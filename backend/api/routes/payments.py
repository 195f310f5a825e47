"""
Booking payment routes: Stripe PaymentIntents and the Stripe webhook.
"""

import json
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.payments import (
    StripeAdapter,
    StripeAPIError,
    StripeAuthError,
    StripeWebhookError,
    WebhookEvent,
)
from api.dependencies import get_current_user
from api.responses import success_response
from api.schemas.payment import CreatePaymentIntentRequest
from infrastructure.database.connection import get_db
from infrastructure.database.models.booking import Booking, BookingStatus, PaymentStatus
from infrastructure.database.models.user import User
from services.affiliate import confirm_conversions_for_booking
from services.notifications import create_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


def get_stripe_adapter() -> StripeAdapter:
    """Dependency returning the Stripe adapter (overridden in tests)."""
    return StripeAdapter()


@router.post("/create-payment-intent")
async def create_payment_intent(
    body: CreatePaymentIntentRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    stripe: StripeAdapter = Depends(get_stripe_adapter),
):
    """
    Start checkout for one of the caller's unpaid bookings.

    The booking id is both intent metadata and the idempotency key, so a
    retried request reuses the same intent.
    """
    booking = await db.get(Booking, body.booking_id)
    if booking is None or booking.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )
    if booking.payment_status == PaymentStatus.PAID.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Booking is already paid",
        )
    if booking.status == BookingStatus.CANCELLED.value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Booking has been cancelled",
        )

    try:
        intent = await stripe.create_payment_intent(
            amount=booking.price_paid,
            metadata={
                "booking_id": booking.id,
                "booking_number": booking.booking_number,
                "user_id": current_user.id,
            },
            idempotency_key=f"booking-{booking.id}-{int(booking.price_paid * 100)}",
        )
    except StripeAuthError as e:
        logger.error("Stripe not configured: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payments are not configured",
        )
    except StripeAPIError as e:
        logger.error("Failed to create payment intent for booking %s: %s", booking.id, e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Payment provider error",
        )

    booking.payment_intent_id = intent.id
    booking.payment_method = booking.payment_method or "card"
    await db.commit()

    return success_response(
        {
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.id,
            "amount": intent.amount,
            "currency": intent.currency,
        }
    )


async def _find_booking(db: AsyncSession, event: WebhookEvent) -> Optional[Booking]:
    booking_id = event.metadata.get("booking_id")
    if booking_id:
        booking = await db.get(Booking, booking_id)
        if booking is not None:
            return booking
    if event.object_id:
        result = await db.execute(
            select(Booking).where(Booking.payment_intent_id == event.object_id)
        )
        return result.scalars().first()
    return None


async def _handle_payment_succeeded(db: AsyncSession, booking: Booking, event: WebhookEvent) -> None:
    if booking.payment_status == PaymentStatus.PAID.value:
        logger.info("Booking %s already paid, ignoring duplicate event", booking.id)
        return

    booking.payment_status = PaymentStatus.PAID.value
    booking.status = BookingStatus.CONFIRMED.value
    if event.object_id:
        booking.payment_intent_id = event.object_id

    confirmed = await confirm_conversions_for_booking(db, booking.id)
    if booking.user_id:
        await create_notification(
            db,
            booking.user_id,
            "payment",
            "Payment received",
            f"Payment for booking {booking.booking_number} was successful.",
            link_url=f"/dashboard/bookings/{booking.id}",
            metadata={"booking_id": booking.id},
        )
    logger.info(
        "Booking %s paid, %d conversion(s) confirmed",
        booking.booking_number,
        confirmed,
        extra={"booking_id": booking.id},
    )


async def _handle_payment_failed(db: AsyncSession, booking: Booking, event: WebhookEvent) -> None:
    if booking.payment_status == PaymentStatus.PAID.value:
        return
    booking.payment_status = PaymentStatus.FAILED.value
    if booking.user_id:
        await create_notification(
            db,
            booking.user_id,
            "payment",
            "Payment failed",
            f"Payment for booking {booking.booking_number} did not go through.",
            link_url=f"/dashboard/bookings/{booking.id}",
            metadata={"booking_id": booking.id},
        )
    logger.warning("Payment failed for booking %s", booking.booking_number)


_HANDLERS = {
    PAYMENT_SUCCEEDED: _handle_payment_succeeded,
    PAYMENT_FAILED: _handle_payment_failed,
}


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Annotated[str | None, Header(alias="Stripe-Signature")] = None,
    db: AsyncSession = Depends(get_db),
    stripe: StripeAdapter = Depends(get_stripe_adapter),
):
    """
    Handle Stripe webhook events.

    - payment_intent.succeeded: booking paid and confirmed, conversions confirmed
    - payment_intent.payment_failed: booking payment marked failed

    Other event types are acknowledged and ignored.
    """
    body = await request.body()

    try:
        valid = stripe.verify_webhook_signature(body, stripe_signature)
    except StripeWebhookError as e:
        logger.error("Webhook rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Webhook verification not configured",
        )
    if not valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid webhook signature",
        )

    try:
        event = stripe.parse_webhook_event(json.loads(body))
    except (ValueError, StripeWebhookError) as e:
        logger.error("Invalid webhook payload: %s", e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid webhook payload",
        )

    handler = _HANDLERS.get(event.type)
    if handler is None:
        return success_response({"received": True, "handled": False})

    booking = await _find_booking(db, event)
    if booking is None:
        logger.warning("Webhook %s references no known booking", event.id, extra={"event_type": event.type})
        return success_response({"received": True, "handled": False})

    await handler(db, booking, event)
    await db.commit()
    return success_response({"received": True, "handled": True, "booking_id": booking.id})
