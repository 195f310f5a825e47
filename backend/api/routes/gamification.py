"""
Gamification routes: points, levels, leaderboard and challenges.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user
from api.responses import success_response
from api.schemas.engagement import ChallengeProgressRequest
from core.utils.pagination import DEFAULT_LIMIT, MAX_LIMIT
from infrastructure.database.connection import get_db
from infrastructure.database.models.gamification import PointsHistory
from infrastructure.database.models.user import User
from services.gamification import (
    AlreadyJoined,
    ChallengeNotFound,
    NotJoined,
    get_leaderboard,
    get_user_stats,
    join_challenge,
    list_active_challenges,
    update_challenge_progress,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gamification", tags=["Gamification"])


@router.get("/stats")
async def get_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await get_user_stats(db, current_user.id))


@router.get("/history")
async def get_points_history(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Points history, newest first, paged in the database."""
    offset = (page - 1) * limit
    total = await db.scalar(
        select(func.count())
        .select_from(PointsHistory)
        .where(PointsHistory.user_id == current_user.id)
    ) or 0
    result = await db.execute(
        select(PointsHistory)
        .where(PointsHistory.user_id == current_user.id)
        .order_by(PointsHistory.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return success_response(
        [h.to_dict() for h in result.scalars().all()],
        pagination={
            "total": total,
            "limit": limit,
            "offset": offset,
            "page": page,
            "has_more": offset + limit < total,
        },
    )


@router.get("/leaderboard")
async def leaderboard(
    limit: int = Query(10, ge=1, le=MAX_LIMIT),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await get_leaderboard(db, limit))


@router.get("/challenges")
async def challenges(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await list_active_challenges(db, current_user.id))


@router.post("/challenges/{challenge_id}/join", status_code=status.HTTP_201_CREATED)
async def join(
    challenge_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        participation = await join_challenge(db, current_user.id, challenge_id)
    except ChallengeNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Challenge not found",
        )
    except AlreadyJoined:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You have already joined this challenge",
        )

    await db.commit()
    return success_response(
        {
            "challenge_id": challenge_id,
            "progress": participation.progress,
            "is_completed": participation.is_completed,
        },
        status_code=201,
        message="Challenge joined",
    )


@router.post("/challenges/{challenge_id}/progress")
async def update_progress(
    challenge_id: str,
    body: ChallengeProgressRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        participation = await update_challenge_progress(
            db, current_user.id, challenge_id, body.progress
        )
    except NotJoined:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Challenge not joined",
        )

    await db.commit()
    return success_response(
        {
            "challenge_id": challenge_id,
            "progress": participation.progress,
            "is_completed": participation.is_completed,
        }
    )
