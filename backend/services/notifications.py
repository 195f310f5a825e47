"""
In-app notification writer.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models.engagement import Notification

logger = logging.getLogger(__name__)


async def create_notification(
    db: AsyncSession,
    user_id: str,
    type: str,
    title: str,
    message: str,
    link_url: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        link_url=link_url,
        extra_data=metadata,
    )
    db.add(notification)
    await db.flush()
    logger.debug("Notification %s queued for user %s", type, user_id)
    return notification
