"""Integration tests for points, streaks, levels and challenges."""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import Challenge, Notification, PointsHistory, User, UserChallenge
from services.gamification import award_points, get_or_create_user_points, record_activity

pytestmark = pytest.mark.asyncio


class TestAwardPoints:
    async def test_level_up_writes_notification(self, db_session: AsyncSession, test_user: User):
        result = await award_points(db_session, test_user.id, 50, "review", "First review")
        assert result == {"points_awarded": 50, "total_points": 50, "level": 1, "leveled_up": False}

        result = await award_points(db_session, test_user.id, 360, "booking")
        assert result["total_points"] == 410
        assert result["level"] == 3
        assert result["leveled_up"] is True

        notifications = (
            await db_session.execute(select(Notification).where(Notification.user_id == test_user.id))
        ).scalars().all()
        assert len(notifications) == 1
        assert notifications[0].type == "level_up"
        assert notifications[0].extra_data == {"old_level": 1, "new_level": 3}

        history = (
            await db_session.execute(select(PointsHistory).where(PointsHistory.user_id == test_user.id))
        ).scalars().all()
        assert sorted(h.points for h in history) == [50, 360]

    async def test_total_never_negative(self, db_session: AsyncSession, test_user: User):
        await award_points(db_session, test_user.id, 30, "review")
        result = await award_points(db_session, test_user.id, -100, "adjustment")
        assert result["total_points"] == 0
        assert result["level"] == 1


class TestStreaks:
    async def test_same_day_is_noop(self, db_session: AsyncSession, test_user: User):
        day = date(2026, 3, 1)
        first = await record_activity(db_session, test_user.id, today=day)
        second = await record_activity(db_session, test_user.id, today=day)
        assert first["current_streak"] == 1
        assert second == {"current_streak": 1, "bonus_awarded": False}

    async def test_gap_resets_streak(self, db_session: AsyncSession, test_user: User):
        start = date(2026, 3, 1)
        for offset in range(3):
            await record_activity(db_session, test_user.id, today=start + timedelta(days=offset))
        result = await record_activity(db_session, test_user.id, today=start + timedelta(days=5))
        assert result["current_streak"] == 1

        points = await get_or_create_user_points(db_session, test_user.id)
        assert points.longest_streak == 3

    async def test_seventh_day_awards_bonus(self, db_session: AsyncSession, test_user: User):
        start = date(2026, 3, 1)
        results = [
            await record_activity(db_session, test_user.id, today=start + timedelta(days=offset))
            for offset in range(7)
        ]
        assert [r["bonus_awarded"] for r in results] == [False] * 6 + [True]

        points = await get_or_create_user_points(db_session, test_user.id)
        assert points.current_streak == 7
        assert points.total_points == 50

        history = (
            await db_session.execute(select(PointsHistory).where(PointsHistory.user_id == test_user.id))
        ).scalar_one()
        assert history.action_type == "streak_bonus"


class TestGamificationRoutes:
    async def test_stats_without_activity(self, async_client: AsyncClient, auth_headers: dict):
        response = await async_client.get("/api/v1/gamification/stats", headers=auth_headers)
        data = response.json()["data"]
        assert data["total_points"] == 0
        assert data["current_level"] == 1
        assert data["next_level_points"] == 100
        assert data["rank"] is None

    async def test_stats_rank_and_progress(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
        auth_headers: dict,
    ):
        await award_points(db_session, test_user.id, 250, "booking")
        await award_points(db_session, other_user.id, 500, "booking")
        await db_session.commit()

        data = (await async_client.get("/api/v1/gamification/stats", headers=auth_headers)).json()["data"]
        assert data["total_points"] == 250
        assert data["current_level"] == 2
        assert data["level_start_points"] == 100
        assert data["next_level_points"] == 400
        assert data["points_to_next_level"] == 150
        assert data["level_progress"] == 50.0
        assert data["rank"] == 2

    async def test_leaderboard(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        other_user: User,
        auth_headers: dict,
    ):
        await award_points(db_session, test_user.id, 100, "booking")
        await award_points(db_session, other_user.id, 300, "booking")
        await db_session.commit()

        response = await async_client.get("/api/v1/gamification/leaderboard?limit=5", headers=auth_headers)
        board = response.json()["data"]
        assert [(row["rank"], row["name"], row["total_points"]) for row in board] == [
            (1, "Other User", 300),
            (2, "Test User", 100),
        ]

    async def test_history_is_paged(
        self, async_client: AsyncClient, db_session: AsyncSession, test_user: User, auth_headers: dict
    ):
        for _ in range(3):
            await award_points(db_session, test_user.id, 5, "daily_login")
        await db_session.commit()

        response = await async_client.get(
            "/api/v1/gamification/history?limit=2&page=2", headers=auth_headers
        )
        body = response.json()
        assert len(body["data"]) == 1
        assert body["pagination"] == {
            "total": 3,
            "limit": 2,
            "offset": 2,
            "page": 2,
            "has_more": False,
        }


class TestChallenges:
    async def _challenge(self, db: AsyncSession, title: str, **kwargs) -> Challenge:
        challenge = Challenge(
            title=title,
            challenge_type="bookings",
            target_value=3,
            points_reward=150,
            **kwargs,
        )
        db.add(challenge)
        await db.commit()
        return challenge

    async def test_lists_only_open_challenges(
        self, async_client: AsyncClient, db_session: AsyncSession, auth_headers: dict, now
    ):
        await self._challenge(db_session, "Open ended")
        await self._challenge(db_session, "Ends soon", end_date=now + timedelta(days=2))
        await self._challenge(db_session, "Finished", end_date=now - timedelta(days=1))
        await self._challenge(db_session, "Upcoming", start_date=now + timedelta(days=1))
        await self._challenge(db_session, "Disabled", is_active=False)

        response = await async_client.get("/api/v1/gamification/challenges", headers=auth_headers)
        data = response.json()["data"]
        assert [c["title"] for c in data] == ["Ends soon", "Open ended"]
        assert all(c["joined"] is False for c in data)

    async def test_join_then_list_shows_progress(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        auth_headers: dict,
    ):
        challenge = await self._challenge(db_session, "Three bookings")

        joined = await async_client.post(
            f"/api/v1/gamification/challenges/{challenge.id}/join", headers=auth_headers
        )
        assert joined.status_code == 201
        assert joined.json()["message"] == "Challenge joined"
        assert joined.json()["data"]["progress"] == 0

        participation = (
            await db_session.execute(select(UserChallenge).where(UserChallenge.user_id == test_user.id))
        ).scalar_one()
        participation.progress = 2
        await db_session.commit()

        listed = await async_client.get("/api/v1/gamification/challenges", headers=auth_headers)
        item = listed.json()["data"][0]
        assert item["joined"] is True
        assert item["progress"] == 2
        assert item["is_completed"] is False

    async def test_join_twice_409(
        self, async_client: AsyncClient, db_session: AsyncSession, auth_headers: dict
    ):
        challenge = await self._challenge(db_session, "Once only")
        url = f"/api/v1/gamification/challenges/{challenge.id}/join"
        await async_client.post(url, headers=auth_headers)
        response = await async_client.post(url, headers=auth_headers)
        assert response.status_code == 409

    async def test_join_closed_challenge_404(
        self, async_client: AsyncClient, db_session: AsyncSession, auth_headers: dict, now
    ):
        challenge = await self._challenge(db_session, "Finished", end_date=now - timedelta(days=1))
        response = await async_client.post(
            f"/api/v1/gamification/challenges/{challenge.id}/join", headers=auth_headers
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Challenge not found"

    async def _joined(self, async_client: AsyncClient, db: AsyncSession, headers: dict) -> str:
        challenge = await self._challenge(db, "Three bookings")
        challenge_id = challenge.id
        await async_client.post(f"/api/v1/gamification/challenges/{challenge_id}/join", headers=headers)
        return challenge_id

    async def test_partial_progress_is_saved(
        self, async_client: AsyncClient, db_session: AsyncSession, auth_headers: dict
    ):
        challenge_id = await self._joined(async_client, db_session, auth_headers)
        response = await async_client.post(
            f"/api/v1/gamification/challenges/{challenge_id}/progress",
            json={"progress": 2},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"] == {
            "challenge_id": challenge_id,
            "progress": 2,
            "is_completed": False,
        }

    async def test_reaching_target_awards_points_once(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        test_user: User,
        auth_headers: dict,
    ):
        user_id = test_user.id
        challenge_id = await self._joined(async_client, db_session, auth_headers)
        url = f"/api/v1/gamification/challenges/{challenge_id}/progress"

        done = await async_client.post(url, json={"progress": 3}, headers=auth_headers)
        assert done.json()["data"]["is_completed"] is True

        again = await async_client.post(url, json={"progress": 5}, headers=auth_headers)
        assert again.status_code == 200
        assert again.json()["data"] == {
            "challenge_id": challenge_id,
            "progress": 3,
            "is_completed": True,
        }

        history = (
            await db_session.execute(select(PointsHistory).where(PointsHistory.user_id == user_id))
        ).scalars().all()
        assert [(h.points, h.action_type, h.reference_id) for h in history] == [
            (150, "challenge_complete", challenge_id)
        ]
        notifications = (
            await db_session.execute(select(Notification.type).where(Notification.user_id == user_id))
        ).scalars().all()
        assert notifications.count("challenge_complete") == 1

        participation = (
            await db_session.execute(select(UserChallenge).where(UserChallenge.user_id == user_id))
        ).scalar_one()
        assert participation.completed_at is not None

    async def test_progress_without_joining_404(
        self, async_client: AsyncClient, db_session: AsyncSession, auth_headers: dict
    ):
        challenge = await self._challenge(db_session, "Not mine")
        response = await async_client.post(
            f"/api/v1/gamification/challenges/{challenge.id}/progress",
            json={"progress": 1},
            headers=auth_headers,
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Challenge not joined"

    async def test_negative_progress_400(
        self, async_client: AsyncClient, db_session: AsyncSession, auth_headers: dict
    ):
        challenge_id = await self._joined(async_client, db_session, auth_headers)
        response = await async_client.post(
            f"/api/v1/gamification/challenges/{challenge_id}/progress",
            json={"progress": -1},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert "progress" in response.json()["errors"]
