"""
API dependencies for authentication and scheduled-job access.
"""

import hmac
import logging
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.security.tokens import TokenService
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models.user import User

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized - Please log in"

token_service = TokenService(
    secret_key=settings.jwt_secret_key,
    algorithm=settings.jwt_algorithm,
    access_token_expire_minutes=settings.jwt_access_token_expire_minutes,
    refresh_token_expire_days=settings.jwt_refresh_token_expire_days,
)


def _bearer_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    token = None
    if authorization and authorization.startswith("Bearer "):
        token = authorization.split(" ", 1)[1].strip() or None
    return token or request.cookies.get("access_token")


async def get_current_user(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency to get the current authenticated user.

    Reads the Bearer token from the Authorization header, falling back to the
    HttpOnly ``access_token`` cookie.
    """
    token = _bearer_token(request, authorization)
    payload = token_service.verify_access_token(token) if token else None
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=UNAUTHORIZED_MESSAGE,
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == payload.sub))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=UNAUTHORIZED_MESSAGE,
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is not active",
        )

    return user


async def verify_cron_secret(
    x_cron_secret: Annotated[str | None, Header()] = None,
    authorization: Annotated[str | None, Header()] = None,
    secret: Optional[str] = Query(None),
) -> None:
    """
    Accept the cron secret from ``x-cron-secret``, ``Authorization: Bearer``
    or ``?secret=``. An unset server secret rejects every caller.
    """
    provided = x_cron_secret
    if not provided and authorization and authorization.startswith("Bearer "):
        provided = authorization.split(" ", 1)[1].strip()
    if not provided:
        provided = secret

    expected = settings.cron_secret
    if not expected or not provided or not hmac.compare_digest(provided, expected):
        logger.warning("Rejected cron request with missing or invalid secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
