"""
Analytics Service

Per-user ride analytics, ride history and leaderboards, read from the
user_statistics totals written when rides complete.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sharetaxi.config import settings
from sharetaxi.database import get_db
from sharetaxi.models.analytics import (
    LeaderboardEntry,
    LeaderboardType,
    RideHistoryEntry,
    UserAnalytics,
    UserStatistics,
)
from sharetaxi.models.ride import ParticipantRole, ParticipantStatus, Ride
from sharetaxi.models.user import TRUST_SCORE_MAX
from sharetaxi.utils.co2 import get_user_level
from sharetaxi.utils.timezone_utils import round_half_up, utc_now

logger = logging.getLogger(__name__)

MONTHLY_WINDOW_DAYS = 30
RECENT_RIDES_LIMIT = 10

_LEADERBOARD_STAT_FIELDS = {
    LeaderboardType.SAVINGS: "money_saved",
    LeaderboardType.CO2: "total_co2_saved",
}


class AnalyticsService:
    """Service for user analytics and leaderboards."""

    async def get_user_analytics(self, user_id: str) -> UserAnalytics:
        """
        Ride counts, savings, rating summary and recent completed rides.

        Driver rides are rides the user created; passenger rides are the
        ones they joined. Monthly rides are completed rides that departed
        in the last 30 days.
        """
        db = get_db()

        user = await db.users.find_one({"user_id": user_id})
        if not user:
            raise ValueError("User not found")

        rides_as_driver = await db.rides.count_documents({"user_id": user_id})
        rides_as_passenger = await db.ride_participants.count_documents({
            "user_id": user_id,
            "role": ParticipantRole.PASSENGER.value,
        })

        completed_ids = []
        async for doc in db.ride_participants.find({
            "user_id": user_id,
            "status": ParticipantStatus.COMPLETED.value,
        }):
            completed_ids.append(doc["ride_id"])

        monthly_rides = 0
        if completed_ids:
            monthly_rides = await db.rides.count_documents({
                "ride_id": {"$in": completed_ids},
                "departure_time": {"$gte": utc_now() - timedelta(days=MONTHLY_WINDOW_DAYS)},
            })

        stats_doc = await db.user_statistics.find_one({"user_id": user_id})
        stats = UserStatistics(**stats_doc) if stats_doc else UserStatistics(user_id=user_id)

        scores: List[int] = []
        async for doc in db.ratings.find({"rated_user_id": user_id}):
            scores.append(doc["score"])
        avg_rating = round_half_up(sum(scores) / len(scores), 1) if scores else 0.0

        recent_rides = await self._history(
            user_id, limit=RECENT_RIDES_LIMIT, status=ParticipantStatus.COMPLETED
        )

        return UserAnalytics(
            user_id=user_id,
            total_rides=rides_as_driver + rides_as_passenger,
            rides_as_driver=rides_as_driver,
            rides_as_passenger=rides_as_passenger,
            monthly_rides=monthly_rides,
            total_savings=stats.money_saved,
            co2_saved=stats.total_co2_saved,
            points=stats.points,
            trust_score=user.get("trust_score", TRUST_SCORE_MAX),
            avg_rating=avg_rating,
            total_ratings=len(scores),
            level=get_user_level(stats.total_co2_saved),
            recent_rides=recent_rides,
        )

    async def get_ride_history(
        self, user_id: str, limit: Optional[int] = None
    ) -> List[RideHistoryEntry]:
        """Every ride the user took part in, latest departure first."""
        return await self._history(user_id, limit=limit or settings.ride_history_limit)

    async def get_leaderboard(
        self, kind: LeaderboardType = LeaderboardType.RIDES, limit: Optional[int] = None
    ) -> List[LeaderboardEntry]:
        """
        Top users by completed rides, money saved or CO2 saved.

        Ride counts come from the users collection; savings rankings come
        from user_statistics.
        """
        db = get_db()
        limit = limit or settings.leaderboard_limit
        kind = LeaderboardType(kind)

        users: Dict[str, Dict[str, Any]] = {}
        stats: Dict[str, Dict[str, Any]] = {}
        order: List[str] = []

        if kind == LeaderboardType.RIDES:
            async for doc in db.users.find({}).sort("total_rides", -1).limit(limit):
                users[doc["user_id"]] = doc
                order.append(doc["user_id"])
            if order:
                async for doc in db.user_statistics.find({"user_id": {"$in": order}}):
                    stats[doc["user_id"]] = doc
        else:
            field = _LEADERBOARD_STAT_FIELDS[kind]
            async for doc in db.user_statistics.find({}).sort(field, -1).limit(limit):
                stats[doc["user_id"]] = doc
                order.append(doc["user_id"])
            if order:
                async for doc in db.users.find({"user_id": {"$in": order}}):
                    users[doc["user_id"]] = doc

        leaderboard = []
        for user_id in order:
            user = users.get(user_id)
            if not user:
                continue
            user_stats = stats.get(user_id, {})
            leaderboard.append(LeaderboardEntry(
                rank=len(leaderboard) + 1,
                user_id=user_id,
                display_name=user["display_name"],
                photo_url=user.get("photo_url"),
                trust_score=user.get("trust_score", TRUST_SCORE_MAX),
                total_rides=user.get("total_rides", 0),
                money_saved=user_stats.get("money_saved", 0.0),
                co2_saved=user_stats.get("total_co2_saved", 0.0),
            ))

        return leaderboard

    async def _history(
        self,
        user_id: str,
        limit: int,
        status: Optional[ParticipantStatus] = None,
    ) -> List[RideHistoryEntry]:
        db = get_db()

        query: Dict[str, Any] = {"user_id": user_id}
        if status:
            query["status"] = ParticipantStatus(status).value

        participations: Dict[str, Dict[str, Any]] = {}
        async for doc in db.ride_participants.find(query):
            participations[doc["ride_id"]] = doc

        if not participations:
            return []

        cursor = db.rides.find(
            {"ride_id": {"$in": list(participations)}}
        ).sort("departure_time", -1).limit(limit)

        history = []
        async for doc in cursor:
            participation = participations[doc["ride_id"]]
            history.append(RideHistoryEntry(
                ride=Ride(**doc),
                role=participation["role"],
                participant_status=participation["status"],
            ))

        return history
