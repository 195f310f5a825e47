"""
Gamification Service.

Points, levels, daily streaks, the leaderboard and challenges. Every function works inside the caller's
session and only flushes; the route decides when to commit.
"""

import logging
from datetime import UTC, date, datetime, timedelta
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.gamification import (
    STREAK_BONUS_INTERVAL_DAYS,
    STREAK_BONUS_POINTS,
    level_for_points,
    level_progress,
    points_for_level,
    points_to_next_level,
)
from infrastructure.database.models.gamification import (
    Challenge,
    PointsHistory,
    UserChallenge,
    UserPoints,
)
from infrastructure.database.models.user import User
from services.notifications import create_notification

logger = logging.getLogger(__name__)


async def get_or_create_user_points(db: AsyncSession, user_id: str) -> UserPoints:
    result = await db.execute(select(UserPoints).where(UserPoints.user_id == user_id))
    user_points = result.scalar_one_or_none()
    if user_points is None:
        user_points = UserPoints(
            user_id=user_id,
            total_points=0,
            current_level=1,
            current_streak=0,
            longest_streak=0,
        )
        db.add(user_points)
        await db.flush()
    return user_points


async def award_points(
    db: AsyncSession,
    user_id: str,
    points: int,
    action_type: str,
    description: Optional[str] = None,
    reference_id: Optional[str] = None,
    reference_type: Optional[str] = None,
) -> dict:
    """
    Add points to a user's total and log them to points_history.

    A level-up writes a ``level_up`` notification.

    Returns:
        dict with points_awarded, total_points, level and leveled_up
    """
    user_points = await get_or_create_user_points(db, user_id)
    old_level = user_points.current_level

    user_points.total_points = max(0, user_points.total_points + points)
    new_level = level_for_points(user_points.total_points)
    user_points.current_level = new_level

    db.add(
        PointsHistory(
            user_id=user_id,
            points=points,
            action_type=action_type,
            action_description=description,
            reference_id=reference_id,
            reference_type=reference_type,
        )
    )

    leveled_up = new_level > old_level
    if leveled_up:
        await create_notification(
            db,
            user_id,
            "level_up",
            f"Level up! You reached level {new_level}",
            f"You now have {user_points.total_points} points. Keep it up!",
            link_url="/dashboard/gamification",
            metadata={"old_level": old_level, "new_level": new_level},
        )
        logger.info("User %s leveled up %d -> %d", user_id, old_level, new_level)

    await db.flush()
    return {
        "points_awarded": points,
        "total_points": user_points.total_points,
        "level": new_level,
        "leveled_up": leveled_up,
    }


async def record_activity(db: AsyncSession, user_id: str, today: Optional[date] = None) -> dict:
    """
    Update the daily streak for today's activity.

    Same-day repeats are no-ops, consecutive days extend the streak and a
    gap resets it to 1. Every 7th consecutive day earns a streak bonus.
    """
    today = today or datetime.now(UTC).date()
    user_points = await get_or_create_user_points(db, user_id)
    last = user_points.last_activity_date

    if last == today:
        return {"current_streak": user_points.current_streak, "bonus_awarded": False}

    if last is not None and last == today - timedelta(days=1):
        user_points.current_streak += 1
    else:
        user_points.current_streak = 1
    user_points.longest_streak = max(user_points.longest_streak, user_points.current_streak)
    user_points.last_activity_date = today

    bonus_awarded = user_points.current_streak % STREAK_BONUS_INTERVAL_DAYS == 0
    if bonus_awarded:
        await award_points(
            db,
            user_id,
            STREAK_BONUS_POINTS,
            "streak_bonus",
            f"{user_points.current_streak}-day streak bonus",
        )
    await db.flush()
    return {"current_streak": user_points.current_streak, "bonus_awarded": bonus_awarded}


async def get_user_stats(db: AsyncSession, user_id: str) -> dict:
    """Points, level progress, streaks and leaderboard rank for a user."""
    result = await db.execute(select(UserPoints).where(UserPoints.user_id == user_id))
    user_points = result.scalar_one_or_none()

    total = user_points.total_points if user_points else 0
    level = level_for_points(total)

    rank = None
    if user_points is not None:
        ahead = await db.scalar(
            select(func.count()).select_from(UserPoints).where(UserPoints.total_points > total)
        )
        rank = (ahead or 0) + 1

    return {
        "total_points": total,
        "current_level": level,
        "level_start_points": points_for_level(level),
        "next_level_points": points_for_level(level + 1),
        "points_to_next_level": points_to_next_level(total),
        "level_progress": level_progress(total),
        "current_streak": user_points.current_streak if user_points else 0,
        "longest_streak": user_points.longest_streak if user_points else 0,
        "rank": rank,
    }


async def get_leaderboard(db: AsyncSession, limit: int = 10) -> list[dict]:
    result = await db.execute(
        select(UserPoints, User.name)
        .join(User, User.id == UserPoints.user_id)
        .order_by(UserPoints.total_points.desc(), UserPoints.created_at)
        .limit(limit)
    )
    return [
        {
            "rank": position,
            "user_id": points.user_id,
            "name": name,
            "total_points": points.total_points,
            "current_level": points.current_level,
        }
        for position, (points, name) in enumerate(result.all(), start=1)
    ]


def _active_challenge_filters(now: datetime):
    return (
        Challenge.is_active.is_(True),
        or_(Challenge.start_date.is_(None), Challenge.start_date <= now),
        or_(Challenge.end_date.is_(None), Challenge.end_date >= now),
    )


async def list_active_challenges(db: AsyncSession, user_id: str) -> list[dict]:
    """Challenges open right now, each with the user's progress if they joined."""
    now = datetime.now(UTC)
    result = await db.execute(
        select(Challenge)
        .where(*_active_challenge_filters(now))
        .order_by(Challenge.end_date.is_(None), Challenge.end_date, Challenge.created_at)
    )
    challenges = result.scalars().all()

    joined: dict[str, UserChallenge] = {}
    if challenges:
        rows = await db.execute(
            select(UserChallenge).where(
                UserChallenge.user_id == user_id,
                UserChallenge.challenge_id.in_([c.id for c in challenges]),
            )
        )
        joined = {uc.challenge_id: uc for uc in rows.scalars().all()}

    items = []
    for challenge in challenges:
        item = challenge.to_dict()
        participation = joined.get(challenge.id)
        item["joined"] = participation is not None
        item["progress"] = participation.progress if participation else 0
        item["is_completed"] = participation.is_completed if participation else False
        items.append(item)
    return items


class ChallengeNotFound(LookupError):
    pass


class AlreadyJoined(Exception):
    pass


async def join_challenge(db: AsyncSession, user_id: str, challenge_id: str) -> UserChallenge:
    """
    Enroll a user in an active challenge.

    Raises:
        ChallengeNotFound: Unknown, inactive or out-of-window challenge
        AlreadyJoined: The user is already enrolled
    """
    result = await db.execute(
        select(Challenge).where(
            Challenge.id == challenge_id, *_active_challenge_filters(datetime.now(UTC))
        )
    )
    if result.scalar_one_or_none() is None:
        raise ChallengeNotFound(challenge_id)

    existing = await db.execute(
        select(UserChallenge.id).where(
            UserChallenge.user_id == user_id,
            UserChallenge.challenge_id == challenge_id,
        )
    )
    if existing.first() is not None:
        raise AlreadyJoined(challenge_id)

    participation = UserChallenge(user_id=user_id, challenge_id=challenge_id, progress=0)
    db.add(participation)
    await db.flush()
    return participation


class NotJoined(LookupError):
    pass


async def update_challenge_progress(
    db: AsyncSession, user_id: str, challenge_id: str, progress: int
) -> UserChallenge:
    """
    Set a user's progress on a joined challenge.

    Reaching the target completes it once: points_reward is awarded and a
    ``challenge_complete`` notification is written. Completed challenges
    are left as they are.

    Raises:
        NotJoined: The user has not joined this challenge
    """
    result = await db.execute(
        select(UserChallenge, Challenge)
        .join(Challenge, Challenge.id == UserChallenge.challenge_id)
        .where(
            UserChallenge.user_id == user_id,
            UserChallenge.challenge_id == challenge_id,
        )
    )
    row = result.first()
    if row is None:
        raise NotJoined(challenge_id)
    participation, challenge = row

    if participation.is_completed:
        return participation

    participation.progress = progress
    if progress >= challenge.target_value:
        participation.is_completed = True
        participation.completed_at = datetime.now(UTC)
        if challenge.points_reward > 0:
            await award_points(
                db,
                user_id,
                challenge.points_reward,
                "challenge_complete",
                f"Completed challenge: {challenge.title}",
                reference_id=challenge.id,
                reference_type="challenge",
            )
        await create_notification(
            db,
            user_id,
            "challenge_complete",
            "Challenge completed!",
            f"You completed {challenge.title} and earned {challenge.points_reward} points.",
            link_url="/dashboard/gamification",
            metadata={"challenge_id": challenge.id, "points": challenge.points_reward},
        )
        logger.info("User %s completed challenge %s", user_id, challenge.id)

    await db.flush()
    return participation
