"""
Ride Service

Ride creation, joining, cancellation and completion.
"""

import logging
import re
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from geopy.distance import geodesic
from pymongo.errors import DuplicateKeyError

from sharetaxi.config import settings
from sharetaxi.database import get_db
from sharetaxi.models.match import MatchingResult
from sharetaxi.models.notification import NotificationType
from sharetaxi.models.ride import (
    ParticipantPublic,
    ParticipantRole,
    ParticipantStatus,
    Ride,
    RideCreate,
    RideDetails,
    RideParticipant,
    RideStatus,
    RideType,
)
from sharetaxi.models.user import Building, UserPublic
from sharetaxi.services.notification_service import NotificationService
from sharetaxi.utils.co2 import (
    VehicleClass,
    calculate_co2_saved,
    calculate_co2_split,
    calculate_eco_points,
)
from sharetaxi.utils.timezone_utils import ensure_utc, round_half_up, utc_now

logger = logging.getLogger(__name__)


class RideService:
    """
    Ride management service.
    """

    def __init__(self, matching_service=None, notification_service=None):
        self._matching_service = matching_service
        self.notification_service = notification_service or NotificationService()

    @property
    def matching_service(self):
        if self._matching_service is None:
            from sharetaxi.services.matching_service import MatchingService

            self._matching_service = MatchingService(ride_service=self)
        return self._matching_service

    # =========================================================================
    # Create
    # =========================================================================

    async def create_ride(
        self, user_id: str, building_id: str, data: RideCreate
    ) -> Dict[str, Any]:
        """
        Create a ride, register the owner as its driver and run matching.

        Matching is best-effort: its failure never fails ride creation.
        """
        db = get_db()

        ride = Ride(
            ride_id=str(uuid.uuid4()),
            user_id=user_id,
            building_id=building_id,
            type=data.type,
            status=RideStatus.ACTIVE,
            destination_name=data.destination_name,
            destination_address=data.destination_address,
            destination_lat=data.destination_lat,
            destination_lng=data.destination_lng,
            departure_time=ensure_utc(data.departure_time),
            flexibility_minutes=data.flexibility_minutes,
            total_seats=data.total_seats,
            available_seats=data.total_seats - 1,
            cost_sharing_enabled=data.cost_sharing_enabled,
            estimated_cost=data.estimated_cost,
            cost_per_person=(
                data.estimated_cost / data.total_seats if data.estimated_cost else None
            ),
            gender_preference=data.gender_preference,
            max_detour_km=data.max_detour_km,
            purpose=data.purpose,
            notes=data.notes,
            expires_at=utc_now() + timedelta(hours=settings.ride_ttl_hours),
        )

        await db.rides.insert_one(ride.model_dump())

        driver = RideParticipant(
            ride_id=ride.ride_id,
            user_id=user_id,
            role=ParticipantRole.DRIVER,
            status=ParticipantStatus.CONFIRMED,
        )
        await db.ride_participants.insert_one(driver.model_dump())

        matching: MatchingResult = await self.matching_service.trigger_matching(ride.ride_id)
        if not matching.success:
            logger.warning(f"Matching failed for new ride {ride.ride_id}: {matching.error}")

        return {
            "ride": ride,
            "matches_found": matching.matches_found if matching.success else 0,
        }

    # =========================================================================
    # Read
    # =========================================================================

    async def get_ride(self, ride_id: str) -> Optional[Ride]:
        db = get_db()
        doc = await db.rides.find_one({"ride_id": ride_id})
        return Ride(**doc) if doc else None

    async def get_active_rides(self, building_id: str) -> List[Ride]:
        """Joinable rides in a building, soonest departure first."""
        db = get_db()

        cursor = db.rides.find({
            "status": RideStatus.ACTIVE.value,
            "building_id": building_id,
            "expires_at": {"$gt": utc_now()},
            "available_seats": {"$gt": 0},
        }).sort("departure_time", 1).limit(settings.active_rides_limit)

        rides = []
        async for doc in cursor:
            rides.append(Ride(**doc))

        return rides

    async def search_rides(
        self,
        query: Optional[str] = None,
        departure_after: Optional[datetime] = None,
        departure_before: Optional[datetime] = None,
        ride_type: Optional[RideType] = None,
    ) -> List[Ride]:
        """
        Joinable rides whose destination name or address contains the
        query (case-insensitive), soonest departure first.
        """
        db = get_db()

        filters: Dict[str, Any] = {
            "status": RideStatus.ACTIVE.value,
            "expires_at": {"$gt": utc_now()},
            "available_seats": {"$gt": 0},
        }

        if query and query.strip():
            regex = {"$regex": re.escape(query.strip()), "$options": "i"}
            filters["$or"] = [
                {"destination_name": regex},
                {"destination_address": regex},
            ]

        departure: Dict[str, datetime] = {}
        if departure_after:
            departure["$gte"] = ensure_utc(departure_after)
        if departure_before:
            departure["$lte"] = ensure_utc(departure_before)
        if departure:
            filters["departure_time"] = departure

        if ride_type:
            filters["type"] = RideType(ride_type).value

        cursor = db.rides.find(filters).sort("departure_time", 1).limit(
            settings.search_rides_limit
        )

        rides = []
        async for doc in cursor:
            rides.append(Ride(**doc))

        return rides

    async def get_ride_details(self, ride_id: str) -> RideDetails:
        """Ride with its owner, building and participants (in join order)."""
        db = get_db()

        ride = await self.get_ride(ride_id)
        if not ride:
            raise ValueError("Ride not found")

        owner_doc = await db.users.find_one({"user_id": ride.user_id})
        if not owner_doc:
            raise ValueError("Ride not found")

        building_doc = await db.buildings.find_one({"building_id": ride.building_id})

        participant_docs = []
        async for doc in db.ride_participants.find({"ride_id": ride_id}).sort("joined_at", 1):
            participant_docs.append(doc)

        users: Dict[str, UserPublic] = {}
        user_ids = [doc["user_id"] for doc in participant_docs]
        if user_ids:
            async for doc in db.users.find({"user_id": {"$in": user_ids}}):
                users[doc["user_id"]] = UserPublic(**doc)

        return RideDetails(
            ride=ride,
            owner=UserPublic(**owner_doc),
            building=Building(**building_doc) if building_doc else None,
            participants=[
                ParticipantPublic(user=users[doc["user_id"]], role=doc["role"], status=doc["status"])
                for doc in participant_docs
                if doc["user_id"] in users
            ],
        )

    async def get_user_rides(
        self, user_id: str, status: Optional[RideStatus] = None
    ) -> List[Ride]:
        """Rides the user owns or joined, latest departure first."""
        db = get_db()

        ride_ids = []
        async for doc in db.ride_participants.find({"user_id": user_id}):
            ride_ids.append(doc["ride_id"])

        filters: Dict[str, Any] = {
            "$or": [{"user_id": user_id}, {"ride_id": {"$in": ride_ids}}]
        }
        if status:
            filters["status"] = RideStatus(status).value

        cursor = db.rides.find(filters).sort("departure_time", -1).limit(
            settings.user_rides_limit
        )

        rides = []
        async for doc in cursor:
            rides.append(Ride(**doc))

        return rides

    # =========================================================================
    # Join
    # =========================================================================

    async def join_ride(self, ride_id: str, user_id: str) -> RideParticipant:
        """
        Join a ride as a passenger.

        The seat is taken with a conditional decrement, so concurrent joins
        can never push available_seats below zero.
        """
        db = get_db()

        ride_doc = await db.rides.find_one({"ride_id": ride_id})
        if not ride_doc:
            raise ValueError("Ride not found")

        if ride_doc["user_id"] == user_id:
            raise ValueError("Cannot join your own ride")

        if ride_doc["status"] != RideStatus.ACTIVE.value:
            raise ValueError("Ride is no longer active")

        existing = await db.ride_participants.find_one(
            {"ride_id": ride_id, "user_id": user_id}
        )
        if existing:
            raise ValueError("Already joined this ride")

        seat = await db.rides.find_one_and_update(
            {
                "ride_id": ride_id,
                "status": RideStatus.ACTIVE.value,
                "available_seats": {"$gt": 0},
            },
            {"$inc": {"available_seats": -1}},
        )
        if not seat:
            raise ValueError("No seats available")

        participant = RideParticipant(
            ride_id=ride_id,
            user_id=user_id,
            role=ParticipantRole.PASSENGER,
            status=ParticipantStatus.CONFIRMED,
        )

        try:
            await db.ride_participants.insert_one(participant.model_dump())
        except DuplicateKeyError:
            # Lost a race with the same user joining twice: give the seat back
            await db.rides.update_one(
                {"ride_id": ride_id}, {"$inc": {"available_seats": 1}}
            )
            raise ValueError("Already joined this ride")

        await self.notification_service.send_push_notification(
            user_id=ride_doc["user_id"],
            title="New rider joined",
            body=f"Someone joined your ride to {ride_doc['destination_name']}",
            data={"ride_id": ride_id, "type": NotificationType.MEMBER_JOINED.value},
            notification_type=NotificationType.MEMBER_JOINED,
        )

        return participant

    # =========================================================================
    # Cancel / Complete
    # =========================================================================

    async def cancel_ride(self, ride_id: str, user_id: str) -> Ride:
        """Cancel a ride. Only the owner can cancel."""
        db = get_db()

        ride = await self.get_ride(ride_id)
        if not ride:
            raise ValueError("Ride not found")
        if ride.user_id != user_id:
            raise ValueError("Only the driver can cancel the ride")
        if ride.status in (RideStatus.COMPLETED, RideStatus.CANCELLED):
            raise ValueError("Ride is already closed")

        await db.rides.update_one(
            {"ride_id": ride_id},
            {"$set": {"status": RideStatus.CANCELLED.value}}
        )
        await db.ride_participants.update_many(
            {"ride_id": ride_id},
            {"$set": {"status": ParticipantStatus.CANCELLED.value}}
        )

        ride.status = RideStatus.CANCELLED.value
        return ride

    async def complete_ride(self, ride_id: str, user_id: str) -> Dict[str, Any]:
        """
        Complete a ride and credit CO2 savings.

        The saved CO2 is split 60/40 between the driver and each passenger;
        every participant's statistics and eco points are updated.
        """
        db = get_db()

        ride = await self.get_ride(ride_id)
        if not ride:
            raise ValueError("Ride not found")
        if ride.user_id != user_id:
            raise ValueError("Only the driver can complete the ride")
        if ride.status in (RideStatus.COMPLETED, RideStatus.CANCELLED):
            raise ValueError("Ride is already closed")

        participants = []
        async for doc in db.ride_participants.find({
            "ride_id": ride_id,
            "status": {"$ne": ParticipantStatus.CANCELLED.value},
        }):
            participants.append(RideParticipant(**doc))

        distance_km = await self._ride_distance_km(ride)
        vehicle = (
            VehicleClass.TWO_WHEELER if ride.type == RideType.TWO_WHEELER
            else VehicleClass.CAR
        )

        total_co2_saved = calculate_co2_saved(distance_km, len(participants), vehicle)
        split = calculate_co2_split(total_co2_saved)

        # What each rider saves against paying the whole fare alone
        money_saved = 0.0
        if ride.estimated_cost and ride.cost_per_person:
            money_saved = round_half_up(ride.estimated_cost - ride.cost_per_person, 2)

        await db.rides.update_one(
            {"ride_id": ride_id},
            {"$set": {"status": RideStatus.COMPLETED.value}}
        )

        for participant in participants:
            is_driver = participant.role == ParticipantRole.DRIVER
            co2_earned = split["driver"] if is_driver else split["passenger"]
            points = calculate_eco_points(co2_earned)

            await db.ride_participants.update_one(
                {"ride_id": ride_id, "user_id": participant.user_id},
                {"$set": {"status": ParticipantStatus.COMPLETED.value}}
            )

            await db.user_statistics.update_one(
                {"user_id": participant.user_id},
                {
                    "$inc": {
                        "total_co2_saved": co2_earned,
                        "total_distance_shared": distance_km,
                        "money_saved": money_saved,
                        "total_rides": 1,
                        "rides_as_driver": 1 if is_driver else 0,
                        "rides_as_passenger": 0 if is_driver else 1,
                        "points": points,
                    },
                    "$set": {"last_ride_at": utc_now()},
                },
                upsert=True,
            )

            await db.users.update_one(
                {"user_id": participant.user_id},
                {"$inc": {"total_rides": 1}}
            )

        return {
            "total_co2_saved": total_co2_saved,
            "driver_co2": split["driver"],
            "passenger_co2": split["passenger"],
            "points_earned": calculate_eco_points(split["driver"]),
            "money_saved": money_saved,
        }

    async def _ride_distance_km(self, ride: Ride) -> float:
        """Route length if known, else building-to-destination geodesic, else the default."""
        if ride.route_distance_m:
            return ride.route_distance_m / 1000

        db = get_db()
        building = await db.buildings.find_one({"building_id": ride.building_id})
        if building and building.get("lat") is not None and building.get("lng") is not None:
            return geodesic(
                (building["lat"], building["lng"]),
                (ride.destination_lat, ride.destination_lng)
            ).kilometers

        return settings.default_route_distance_km
