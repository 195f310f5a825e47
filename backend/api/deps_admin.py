"""
Admin authentication dependencies.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user
from api.responses import QueryError
from infrastructure.database.connection import get_db
from infrastructure.database.models.user import User, UserRole, UserRoleAssignment

logger = logging.getLogger(__name__)


async def get_user_role(db: AsyncSession, user_id: str) -> str:
    """
    Role stored in user_roles; users without a row are plain users.

    Raises:
        QueryError: If the role lookup fails
    """
    try:
        result = await db.execute(
            select(UserRoleAssignment.role).where(UserRoleAssignment.user_id == user_id)
        )
        role = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error("Role lookup failed for user %s: %s", user_id, e)
        raise QueryError("Failed to verify user role")
    return role or UserRole.USER.value


async def get_current_admin_user(
    current_user: Annotated[User, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency to verify current user is an admin.

    Raises:
        HTTPException: 403 if user is not an admin
        QueryError: 500 if the role could not be read
    """
    role = await get_user_role(db, current_user.id)
    if role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden - Admin access required",
        )
    return current_user
