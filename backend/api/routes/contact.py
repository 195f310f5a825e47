"""
Public contact form.
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.email.resend_adapter import email_service
from api.middleware.rate_limit import get_client_ip, get_rate_limit, limiter
from api.responses import success_response
from api.schemas.engagement import ContactRequest
from infrastructure.database.connection import get_db
from infrastructure.database.models.engagement import ContactMessage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contact", tags=["Contact"])


@router.get("")
async def contact_status():
    """Whether contact messages can be forwarded by email."""
    return success_response(email_service.status())


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("contact"))
async def submit_contact(
    request: Request,
    body: ContactRequest,
    db: AsyncSession = Depends(get_db),
):
    """Store the message, then forward it to the support inbox."""
    message = ContactMessage(
        name=body.name,
        email=body.email,
        message=body.message,
        ip_address=get_client_ip(request),
    )
    db.add(message)
    await db.flush()

    message.email_sent = await email_service.send_contact_email(
        name=body.name, email=body.email, message=body.message
    )
    if not message.email_sent:
        logger.warning("Contact message %s stored but not forwarded", message.id)

    await db.commit()
    return success_response(
        {"id": message.id, "email_sent": message.email_sent},
        status_code=201,
        message="Message received. We will get back to you soon.",
    )
