"""
Rating Service

Handles rating submission and trust score calculation.
"""

import logging
import uuid
from typing import List

from pymongo.errors import DuplicateKeyError

from sharetaxi.database import get_db
from sharetaxi.models.rating import Rating, RatingCreate
from sharetaxi.models.user import TRUST_SCORE_MAX

logger = logging.getLogger(__name__)


class RatingService:
    """Service for managing user ratings and trust scores."""

    async def submit_rating(self, rater_user_id: str, data: RatingCreate) -> Rating:
        """
        Submit a rating for another participant of a ride.

        Validates:
        - Not rating themselves
        - Ride exists and both users took part in it
        - Hasn't already rated this user for this ride
        """
        db = get_db()

        if rater_user_id == data.rated_user_id:
            raise ValueError("Cannot rate yourself")

        ride = await db.rides.find_one({"ride_id": data.ride_id})
        if not ride:
            raise ValueError("Ride not found")

        participant_ids = set()
        async for doc in db.ride_participants.find({"ride_id": data.ride_id}):
            participant_ids.add(doc["user_id"])

        if rater_user_id not in participant_ids:
            raise ValueError("Not a participant of this ride")
        if data.rated_user_id not in participant_ids:
            raise ValueError("Rated user was not in this ride")

        existing = await db.ratings.find_one({
            "ride_id": data.ride_id,
            "rater_user_id": rater_user_id,
            "rated_user_id": data.rated_user_id,
        })
        if existing:
            raise ValueError("You have already rated this user for this ride")

        rating = Rating(
            rating_id=str(uuid.uuid4()),
            rater_user_id=rater_user_id,
            **data.model_dump(),
        )

        try:
            await db.ratings.insert_one(rating.model_dump())
        except DuplicateKeyError:
            raise ValueError("You have already rated this user for this ride")

        await self.update_trust_score(data.rated_user_id)

        return rating

    async def update_trust_score(self, user_id: str) -> float:
        """
        Recalculate a user's trust score.

        Trust score = plain average of received 1-5 scores, kept on the
        0-5 scale the matcher normalizes by. Users without ratings keep
        their current score.
        """
        db = get_db()

        scores: List[int] = []
        async for doc in db.ratings.find({"rated_user_id": user_id}):
            scores.append(doc["score"])

        if not scores:
            user = await db.users.find_one({"user_id": user_id})
            return user.get("trust_score", TRUST_SCORE_MAX) if user else TRUST_SCORE_MAX

        trust_score = round(sum(scores) / len(scores), 3)

        await db.users.update_one(
            {"user_id": user_id}, {"$set": {"trust_score": trust_score}}
        )

        logger.info(f"Trust score for {user_id} is now {trust_score} ({len(scores)} ratings)")
        return trust_score

    async def get_user_ratings(self, user_id: str, limit: int = 20) -> List[Rating]:
        """Public ratings a user received, newest first."""
        db = get_db()

        cursor = db.ratings.find(
            {"rated_user_id": user_id, "is_public": True}
        ).sort("created_at", -1).limit(limit)

        ratings = []
        async for doc in cursor:
            ratings.append(Rating(**doc))

        return ratings
