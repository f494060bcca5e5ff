"""
Ride Store

MongoDB-backed persistence operations used by the matching engine.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pymongo import ReturnDocument

from sharetaxi.database import get_db
from sharetaxi.models.match import Match, MatchStatus
from sharetaxi.models.ride import Ride, RideStatus, RideWithOwner
from sharetaxi.models.user import Building, User


class RideStore:
    """
    Data access for rides, their owners and matches.

    Documents are joined in application code: rides reference users and
    buildings by id.
    """

    # =========================================================================
    # Rides
    # =========================================================================

    async def find_ride_by_id(self, ride_id: str) -> Optional[RideWithOwner]:
        """Load a ride with its owner and building. None if either ride or owner is missing."""
        db = get_db()

        ride_doc = await db.rides.find_one({"ride_id": ride_id})
        if not ride_doc:
            return None

        owner_doc = await db.users.find_one({"user_id": ride_doc["user_id"]})
        if not owner_doc:
            return None

        building_doc = await db.buildings.find_one(
            {"building_id": ride_doc["building_id"]}
        )

        return RideWithOwner(
            ride=Ride(**ride_doc),
            owner=User(**owner_doc),
            building=Building(**building_doc) if building_doc else None,
        )

    async def find_active_rides_in_window(
        self,
        building_id: str,
        exclude_ride_id: str,
        exclude_user_id: str,
        time_range_start: datetime,
        time_range_end: datetime,
    ) -> List[RideWithOwner]:
        """
        Active rides from the same building departing inside the window
        (bounds inclusive), excluding the given ride and user.

        Rides whose owner no longer exists are dropped.
        """
        db = get_db()

        cursor = db.rides.find({
            "ride_id": {"$ne": exclude_ride_id},
            "user_id": {"$ne": exclude_user_id},
            "status": RideStatus.ACTIVE.value,
            "building_id": building_id,
            "departure_time": {
                "$gte": time_range_start,
                "$lte": time_range_end,
            },
        }).sort("created_at", 1)

        ride_docs = []
        async for doc in cursor:
            ride_docs.append(doc)

        if not ride_docs:
            return []

        # Batch fetch owners in one round trip
        owner_ids = list({doc["user_id"] for doc in ride_docs})
        owners: Dict[str, User] = {}
        async for doc in db.users.find({"user_id": {"$in": owner_ids}}):
            owners[doc["user_id"]] = User(**doc)

        return [
            RideWithOwner(ride=Ride(**doc), owner=owners[doc["user_id"]])
            for doc in ride_docs
            if doc["user_id"] in owners
        ]

    # =========================================================================
    # Matches
    # =========================================================================

    async def create_match(self, match: Match) -> Match:
        """
        Insert a match.

        Raises DuplicateKeyError when a pending match for the same ride pair
        already exists (partial unique index).
        """
        db = get_db()
        await db.matches.insert_one(match.model_dump())
        return match

    async def find_pending_match(
        self, source_ride_id: str, target_ride_id: str, now: datetime
    ) -> Optional[Match]:
        db = get_db()
        doc = await db.matches.find_one({
            "source_ride_id": source_ride_id,
            "target_ride_id": target_ride_id,
            "status": MatchStatus.PENDING.value,
            "expires_at": {"$gt": now},
        })
        return Match(**doc) if doc else None

    async def find_pending_matches(
        self, source_ride_id: str, now: datetime
    ) -> List[Match]:
        """Pending, unexpired matches for a ride, best score first."""
        db = get_db()

        cursor = db.matches.find({
            "source_ride_id": source_ride_id,
            "status": MatchStatus.PENDING.value,
            "expires_at": {"$gt": now},
        }).sort([("score", -1), ("created_at", 1)])

        matches = []
        async for doc in cursor:
            matches.append(Match(**doc))

        return matches

    async def find_match_by_id(self, match_id: str) -> Optional[Match]:
        db = get_db()
        doc = await db.matches.find_one({"match_id": match_id})
        return Match(**doc) if doc else None

    async def update_match_status(
        self,
        match_id: str,
        status: MatchStatus,
        responded_at: Optional[datetime],
    ) -> Optional[Match]:
        """
        Move a PENDING match to a terminal status.

        The update only applies while the match is still pending, so two
        concurrent responses cannot both win. Returns the updated match,
        or None if it was not pending anymore.
        """
        db = get_db()

        doc = await db.matches.find_one_and_update(
            {"match_id": match_id, "status": MatchStatus.PENDING.value},
            {"$set": {
                "status": MatchStatus(status).value,
                "responded_at": responded_at,
            }},
            return_document=ReturnDocument.AFTER,
        )

        return Match(**doc) if doc else None
