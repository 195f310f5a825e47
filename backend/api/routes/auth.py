"""
Authentication API routes.
"""

import logging
from datetime import UTC, datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, token_service
from api.middleware.rate_limit import get_rate_limit, limiter
from api.responses import success_response
from api.schemas.auth import LoginRequest, RefreshTokenRequest, RegisterRequest, UserResponse
from core.security.password import password_hasher
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models.user import User, UserRole, UserRoleAssignment, UserStatus
from services.affiliate import find_user_by_referral_code, record_referral_signup

logger = logging.getLogger(__name__)


def _get_cookie_kwargs() -> dict:
    """SameSite=None; Secure outside local development, Lax otherwise."""
    is_deployed = not any(
        h in settings.frontend_url for h in ("localhost", "127.0.0.1", "0.0.0.0")
    )
    cross_site = settings.is_production or is_deployed
    return dict(
        httponly=True,
        secure=cross_site,
        samesite="none" if cross_site else "lax",
        path="/",
    )


def _set_auth_cookies(response: JSONResponse, access_token: str, refresh_token: str) -> None:
    kwargs = _get_cookie_kwargs()
    response.set_cookie(
        "access_token",
        access_token,
        max_age=settings.jwt_access_token_expire_minutes * 60,
        **kwargs,
    )
    response.set_cookie(
        "refresh_token",
        refresh_token,
        max_age=settings.jwt_refresh_token_expire_days * 86400,
        **kwargs,
    )


router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_body(user: User) -> dict:
    access_token, refresh_token = token_service.create_token_pair(user_id=user.id, email=user.email)
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "expires_in": token_service.access_token_ttl_seconds,
    }


def _user_body(user: User) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("register"))
async def register(
    request: Request,
    register_data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Register a new user account.

    A valid ``referral_code`` links the new account to its referrer.
    """
    email = register_data.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists",
        )

    referrer = None
    if register_data.referral_code:
        referrer = await find_user_by_referral_code(db, register_data.referral_code)
        if referrer is None:
            logger.info("Ignoring unknown referral code at signup")

    user = User(
        email=email,
        name=register_data.name,
        phone=register_data.phone,
        password_hash=password_hasher.hash(register_data.password),
        status=UserStatus.ACTIVE.value,
    )
    user.role_assignment = UserRoleAssignment(role=UserRole.USER.value)
    db.add(user)
    await db.flush()

    if referrer is not None:
        await record_referral_signup(db, referrer, user)

    await db.commit()
    await db.refresh(user)
    logger.info("User registered: %s", user.id)

    tokens = _token_body(user)
    response = success_response({"user": _user_body(user), **tokens}, status_code=201)
    _set_auth_cookies(response, tokens["access_token"], tokens["refresh_token"])
    return response


@router.post("/login")
@limiter.limit(get_rate_limit("login"))
async def login(
    request: Request,
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Authenticate user and return access tokens.
    """
    result = await db.execute(select(User).where(User.email == login_data.email.lower()))
    user = result.scalar_one_or_none()

    # Always run bcrypt so response time does not reveal whether the email exists
    _DUMMY_HASH = "$2b$12$WmDNGEj9s7YLV5sV/N7aBOpWL0.T5.R5ZQOeKHNlLB.d7WN4HFXIC"
    password_ok = password_hasher.verify(
        login_data.password,
        user.password_hash if user else _DUMMY_HASH,
    )
    if not user or not password_ok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if user.status == UserStatus.SUSPENDED.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account has been suspended",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    user.last_login = datetime.now(UTC)
    await db.commit()

    tokens = _token_body(user)
    response = success_response(tokens)
    _set_auth_cookies(response, tokens["access_token"], tokens["refresh_token"])
    return response


@router.post("/refresh")
@limiter.limit(get_rate_limit("login"))
async def refresh_token(
    request: Request,
    body: Optional[RefreshTokenRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Refresh access token using refresh token.

    Accepts the refresh token from the HttpOnly cookie first, then the body.
    """
    refresh_tok = request.cookies.get("refresh_token")
    if not refresh_tok:
        refresh_tok = body.refresh_token if body and body.refresh_token else None

    if not refresh_tok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token required",
        )

    payload = token_service.verify_refresh_token(refresh_tok)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    user = await db.get(User, payload.sub)
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    tokens = _token_body(user)
    response = success_response(tokens)
    _set_auth_cookies(response, tokens["access_token"], tokens["refresh_token"])
    return response


@router.get("/me")
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> JSONResponse:
    """
    Get current authenticated user profile.
    """
    return success_response(_user_body(current_user))
