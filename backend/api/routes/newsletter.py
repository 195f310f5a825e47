"""
Newsletter subscription routes.
"""

import logging
from datetime import UTC, datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email.resend_adapter import email_service
from api.middleware.rate_limit import get_client_ip, get_rate_limit, limiter
from api.responses import ValidationError, success_response
from api.schemas.engagement import (
    EMAIL_PATTERN,
    NewsletterSubscribeRequest,
    NewsletterUnsubscribeRequest,
)
from core.utils.tokens import generate_unsubscribe_token, is_valid_unsubscribe_token
from infrastructure.database.connection import get_db
from infrastructure.database.models.engagement import (
    DEFAULT_NEWSLETTER_PREFERENCES,
    NewsletterSubscription,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/newsletter", tags=["Newsletter"])


async def _send_welcome(email: str, token: str, returning: bool) -> None:
    sent = await email_service.send_newsletter_welcome_email(
        to_email=email, unsubscribe_token=token, returning=returning
    )
    if not sent:
        logger.warning("Newsletter welcome email was not sent")


@router.post("/subscribe")
@limiter.limit(get_rate_limit("newsletter_subscribe"))
async def subscribe(
    request: Request,
    body: NewsletterSubscribeRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Subscribe an email address.

    Active subscribers are left alone; inactive ones are reactivated with a
    fresh unsubscribe token.
    """
    result = await db.execute(
        select(NewsletterSubscription).where(NewsletterSubscription.email == body.email)
    )
    subscription = result.scalar_one_or_none()
    now = datetime.now(UTC)

    if subscription is not None and subscription.is_active:
        return success_response(message="Already subscribed")

    if subscription is not None:
        subscription.is_active = True
        subscription.unsubscribe_token = generate_unsubscribe_token()
        subscription.subscribed_at = now
        subscription.unsubscribed_at = None
        if body.preferences:
            subscription.preferences = {**DEFAULT_NEWSLETTER_PREFERENCES, **body.preferences}
        await db.commit()
        await _send_welcome(subscription.email, subscription.unsubscribe_token, returning=True)
        return success_response(message="Resubscribed successfully")

    subscription = NewsletterSubscription(
        email=body.email,
        is_active=True,
        unsubscribe_token=generate_unsubscribe_token(),
        preferences={**DEFAULT_NEWSLETTER_PREFERENCES, **(body.preferences or {})},
        source=body.source or "manual",
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent", "")[:500] or None,
        subscribed_at=now,
    )
    db.add(subscription)
    await db.commit()
    logger.info("New newsletter subscription from source %s", subscription.source)

    await _send_welcome(subscription.email, subscription.unsubscribe_token, returning=False)
    return success_response(
        {"email": subscription.email},
        status_code=status.HTTP_201_CREATED,
        message="Subscribed successfully",
    )


@router.post("/unsubscribe")
async def unsubscribe(
    body: Optional[NewsletterUnsubscribeRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Unsubscribe by token (from the email link) or by email address.

    Repeating the call answers "Already unsubscribed".
    """
    body = body or NewsletterUnsubscribeRequest()
    token = (body.token or "").strip()
    email = (body.email or "").strip().lower()

    if not token and not email:
        raise ValidationError("Token or email is required")

    if token:
        if not is_valid_unsubscribe_token(token):
            raise ValidationError("Invalid unsubscribe token")
        query = select(NewsletterSubscription).where(
            NewsletterSubscription.unsubscribe_token == token
        )
    else:
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email address")
        query = select(NewsletterSubscription).where(NewsletterSubscription.email == email)

    result = await db.execute(query)
    subscription = result.scalar_one_or_none()
    if subscription is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subscription not found",
        )

    if not subscription.is_active:
        return success_response(message="Already unsubscribed")

    subscription.is_active = False
    subscription.unsubscribed_at = datetime.now(UTC)
    await db.commit()
    return success_response(message="Unsubscribed successfully")
