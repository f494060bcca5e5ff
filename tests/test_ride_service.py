"""
Tests for Ride Service

Ride creation, seat-safe joining, cancellation and CO2 crediting on
completion.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import DuplicateKeyError

from conftest import FakeCursor, make_ride, make_user
from sharetaxi.models.match import MatchingResult
from sharetaxi.models.notification import NotificationType
from sharetaxi.models.ride import RideCreate, RideStatus, RideType
from sharetaxi.services.ride_service import RideService


class TestRideService:

    @pytest.fixture
    def mock_db(self):
        with patch("sharetaxi.services.ride_service.get_db") as mock_get_db:
            db = MagicMock()
            mock_get_db.return_value = db
            yield db

    @pytest.fixture
    def matching_service(self):
        service = MagicMock()
        service.trigger_matching = AsyncMock(
            return_value=MatchingResult(success=True, matches_found=2)
        )
        return service

    @pytest.fixture
    def notification_service(self):
        service = MagicMock()
        service.send_push_notification = AsyncMock()
        return service

    @pytest.fixture
    def service(self, matching_service, notification_service):
        return RideService(
            matching_service=matching_service,
            notification_service=notification_service,
        )

    def _ride_doc(self, **kwargs):
        kwargs.setdefault("total_seats", 3)
        kwargs.setdefault("available_seats", 2)
        return make_ride("ride-1", kwargs.pop("user_id", "owner"), **kwargs).model_dump()

    # =========================================================================
    # Create
    # =========================================================================

    @pytest.mark.asyncio
    async def test_create_ride(self, service, mock_db, matching_service):
        mock_db.rides.insert_one = AsyncMock()
        mock_db.ride_participants.insert_one = AsyncMock()

        data = RideCreate(
            destination_name="Airport",
            destination_address="KIA Terminal 1",
            destination_lat=13.1986,
            destination_lng=77.7066,
            departure_time=datetime(2026, 3, 2, 6, 0),
            total_seats=4,
            estimated_cost=1200,
        )

        created = await service.create_ride("owner", "bldg-1", data)

        ride = created["ride"]
        assert created["matches_found"] == 2
        assert ride.status == RideStatus.ACTIVE.value
        assert ride.available_seats == 3
        assert ride.cost_per_person == 300
        assert ride.departure_time.tzinfo is not None
        assert ride.expires_at is not None

        driver = mock_db.ride_participants.insert_one.call_args[0][0]
        assert driver["user_id"] == "owner"
        assert driver["role"] == "driver"

        matching_service.trigger_matching.assert_called_once_with(ride.ride_id)

    @pytest.mark.asyncio
    async def test_create_ride_survives_matching_failure(self, service, mock_db, matching_service):
        mock_db.rides.insert_one = AsyncMock()
        mock_db.ride_participants.insert_one = AsyncMock()
        matching_service.trigger_matching.return_value = MatchingResult(
            success=False, error="Matching failed"
        )

        data = RideCreate(
            destination_name="Office",
            destination_address="ORR",
            destination_lat=12.93,
            destination_lng=77.69,
            departure_time=datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
        )

        created = await service.create_ride("owner", "bldg-1", data)

        assert created["matches_found"] == 0
        mock_db.rides.insert_one.assert_called_once()

    # =========================================================================
    # Join
    # =========================================================================

    @pytest.mark.asyncio
    async def test_join_ride(self, service, mock_db, notification_service):
        doc = self._ride_doc()
        mock_db.rides.find_one = AsyncMock(return_value=doc)
        mock_db.ride_participants.find_one = AsyncMock(return_value=None)
        mock_db.rides.find_one_and_update = AsyncMock(return_value=doc)
        mock_db.ride_participants.insert_one = AsyncMock()

        participant = await service.join_ride("ride-1", "rider")

        assert participant.user_id == "rider"
        assert participant.role == "passenger"

        query, update = mock_db.rides.find_one_and_update.call_args[0]
        assert query["available_seats"] == {"$gt": 0}
        assert update == {"$inc": {"available_seats": -1}}

        notification_service.send_push_notification.assert_called_once()
        kwargs = notification_service.send_push_notification.call_args.kwargs
        assert kwargs["user_id"] == "owner"
        assert kwargs["notification_type"] == NotificationType.MEMBER_JOINED

    @pytest.mark.asyncio
    async def test_join_own_ride(self, service, mock_db):
        mock_db.rides.find_one = AsyncMock(return_value=self._ride_doc())

        with pytest.raises(ValueError, match="Cannot join your own ride"):
            await service.join_ride("ride-1", "owner")

    @pytest.mark.asyncio
    async def test_join_missing_ride(self, service, mock_db):
        mock_db.rides.find_one = AsyncMock(return_value=None)

        with pytest.raises(ValueError, match="Ride not found"):
            await service.join_ride("ride-1", "rider")

    @pytest.mark.asyncio
    async def test_join_closed_ride(self, service, mock_db):
        mock_db.rides.find_one = AsyncMock(
            return_value=self._ride_doc(status=RideStatus.CANCELLED)
        )

        with pytest.raises(ValueError, match="no longer active"):
            await service.join_ride("ride-1", "rider")

    @pytest.mark.asyncio
    async def test_join_twice(self, service, mock_db):
        mock_db.rides.find_one = AsyncMock(return_value=self._ride_doc())
        mock_db.ride_participants.find_one = AsyncMock(return_value={"user_id": "rider"})

        with pytest.raises(ValueError, match="Already joined"):
            await service.join_ride("ride-1", "rider")

    @pytest.mark.asyncio
    async def test_join_full_ride(self, service, mock_db, notification_service):
        mock_db.rides.find_one = AsyncMock(return_value=self._ride_doc(available_seats=0))
        mock_db.ride_participants.find_one = AsyncMock(return_value=None)
        mock_db.rides.find_one_and_update = AsyncMock(return_value=None)

        with pytest.raises(ValueError, match="No seats available"):
            await service.join_ride("ride-1", "rider")

        notification_service.send_push_notification.assert_not_called()

    @pytest.mark.asyncio
    async def test_join_race_gives_seat_back(self, service, mock_db):
        doc = self._ride_doc()
        mock_db.rides.find_one = AsyncMock(return_value=doc)
        mock_db.ride_participants.find_one = AsyncMock(return_value=None)
        mock_db.rides.find_one_and_update = AsyncMock(return_value=doc)
        mock_db.ride_participants.insert_one = AsyncMock(
            side_effect=DuplicateKeyError("duplicate")
        )
        mock_db.rides.update_one = AsyncMock()

        with pytest.raises(ValueError, match="Already joined"):
            await service.join_ride("ride-1", "rider")

        mock_db.rides.update_one.assert_called_once_with(
            {"ride_id": "ride-1"}, {"$inc": {"available_seats": 1}}
        )

    # =========================================================================
    # Cancel / Complete
    # =========================================================================

    @pytest.mark.asyncio
    async def test_cancel_ride(self, service, mock_db):
        mock_db.rides.find_one = AsyncMock(return_value=self._ride_doc())
        mock_db.rides.update_one = AsyncMock()
        mock_db.ride_participants.update_many = AsyncMock()

        ride = await service.cancel_ride("ride-1", "owner")

        assert ride.status == RideStatus.CANCELLED.value
        mock_db.ride_participants.update_many.assert_called_once()

    @pytest.mark.asyncio
    async def test_cancel_by_non_owner(self, service, mock_db):
        mock_db.rides.find_one = AsyncMock(return_value=self._ride_doc())

        with pytest.raises(ValueError, match="Only the driver"):
            await service.cancel_ride("ride-1", "rider")

    @pytest.mark.asyncio
    async def test_complete_ride_credits_co2(self, service, mock_db):
        mock_db.rides.find_one = AsyncMock(
            return_value=self._ride_doc(route_distance_m=10000)
        )
        mock_db.ride_participants.find = MagicMock(return_value=FakeCursor([
            {"ride_id": "ride-1", "user_id": "owner", "role": "driver", "status": "confirmed"},
            {"ride_id": "ride-1", "user_id": "rider", "role": "passenger", "status": "confirmed"},
        ]))
        mock_db.rides.update_one = AsyncMock()
        mock_db.ride_participants.update_one = AsyncMock()
        mock_db.user_statistics.update_one = AsyncMock()
        mock_db.users.update_one = AsyncMock()

        stats = await service.complete_ride("ride-1", "owner")

        # 10km, two people in one car: 0.21 * 10 saved, split 60/40
        assert stats["total_co2_saved"] == 2.1
        assert stats["driver_co2"] == 1.26
        assert stats["passenger_co2"] == 0.84
        assert stats["points_earned"] == 12

        assert mock_db.user_statistics.update_one.call_count == 2
        rider_update = mock_db.user_statistics.update_one.call_args_list[1]
        assert rider_update.args[0] == {"user_id": "rider"}
        assert rider_update.args[1]["$inc"]["total_co2_saved"] == 0.84
        assert rider_update.args[1]["$inc"]["rides_as_passenger"] == 1
        assert rider_update.kwargs["upsert"] is True

    @pytest.mark.asyncio
    async def test_complete_uses_building_distance(self, service, mock_db):
        mock_db.buildings.find_one = AsyncMock(return_value={
            "building_id": "bldg-1", "lat": 12.9716, "lng": 77.6946
        })

        distance = await service._ride_distance_km(make_ride("ride-1", "owner"))

        assert 10.5 < distance < 11.5

    @pytest.mark.asyncio
    async def test_complete_falls_back_to_default_distance(self, service, mock_db):
        mock_db.buildings.find_one = AsyncMock(return_value=None)

        distance = await service._ride_distance_km(make_ride("ride-1", "owner"))

        assert distance == 10.0

    @pytest.mark.asyncio
    async def test_complete_closed_ride(self, service, mock_db):
        mock_db.rides.find_one = AsyncMock(
            return_value=self._ride_doc(status=RideStatus.COMPLETED)
        )

        with pytest.raises(ValueError, match="already closed"):
            await service.complete_ride("ride-1", "owner")

    @pytest.mark.asyncio
    async def test_complete_credits_money_saved(self, service, mock_db):
        mock_db.rides.find_one = AsyncMock(return_value=self._ride_doc(
            route_distance_m=10000, estimated_cost=900, cost_per_person=300
        ))
        mock_db.ride_participants.find = MagicMock(return_value=FakeCursor([
            {"ride_id": "ride-1", "user_id": "owner", "role": "driver", "status": "confirmed"},
        ]))
        mock_db.rides.update_one = AsyncMock()
        mock_db.ride_participants.update_one = AsyncMock()
        mock_db.user_statistics.update_one = AsyncMock()
        mock_db.users.update_one = AsyncMock()

        stats = await service.complete_ride("ride-1", "owner")

        assert stats["money_saved"] == 600
        update = mock_db.user_statistics.update_one.call_args[0][1]
        assert update["$inc"]["money_saved"] == 600

    # =========================================================================
    # Search and lookups
    # =========================================================================

    @pytest.mark.asyncio
    async def test_search_rides_query(self, service, mock_db):
        mock_db.rides.find = MagicMock(return_value=FakeCursor([self._ride_doc()]))
        after = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)

        rides = await service.search_rides(
            query=" Airport(T1) ", departure_after=after, ride_type=RideType.TWO_WHEELER
        )

        assert [r.ride_id for r in rides] == ["ride-1"]
        filters = mock_db.rides.find.call_args[0][0]
        assert filters["status"] == "active"
        assert filters["available_seats"] == {"$gt": 0}
        assert filters["$or"] == [
            {"destination_name": {"$regex": r"Airport\(T1\)", "$options": "i"}},
            {"destination_address": {"$regex": r"Airport\(T1\)", "$options": "i"}},
        ]
        assert filters["departure_time"] == {"$gte": after}
        assert filters["type"] == "two_wheeler"

    @pytest.mark.asyncio
    async def test_search_rides_without_query(self, service, mock_db):
        mock_db.rides.find = MagicMock(return_value=FakeCursor([]))

        assert await service.search_rides(query="   ") == []

        filters = mock_db.rides.find.call_args[0][0]
        assert "$or" not in filters
        assert "departure_time" not in filters

    @pytest.mark.asyncio
    async def test_ride_details(self, service, mock_db):
        mock_db.rides.find_one = AsyncMock(return_value=self._ride_doc())
        mock_db.users.find_one = AsyncMock(return_value=make_user("owner").model_dump())
        mock_db.buildings.find_one = AsyncMock(
            return_value={"building_id": "bldg-1", "name": "Prestige Towers"}
        )
        mock_db.ride_participants.find = MagicMock(return_value=FakeCursor([
            {"ride_id": "ride-1", "user_id": "owner", "role": "driver", "status": "confirmed"},
            {"ride_id": "ride-1", "user_id": "rider", "role": "passenger", "status": "confirmed"},
        ]))
        mock_db.users.find = MagicMock(return_value=FakeCursor([
            make_user("owner").model_dump(),
            make_user("rider", trust_score=4.2).model_dump(),
        ]))

        details = await service.get_ride_details("ride-1")

        assert details.owner.user_id == "owner"
        assert details.building.name == "Prestige Towers"
        assert [p.user.user_id for p in details.participants] == ["owner", "rider"]
        assert details.participants[1].role == "passenger"
        assert details.participants[1].user.trust_score == 4.2
        assert mock_db.users.find.call_args[0][0] == {"user_id": {"$in": ["owner", "rider"]}}

    @pytest.mark.asyncio
    async def test_ride_details_missing_ride(self, service, mock_db):
        mock_db.rides.find_one = AsyncMock(return_value=None)

        with pytest.raises(ValueError, match="Ride not found"):
            await service.get_ride_details("ride-1")

    @pytest.mark.asyncio
    async def test_user_rides_owned_or_joined(self, service, mock_db):
        mock_db.ride_participants.find = MagicMock(return_value=FakeCursor([
            {"ride_id": "ride-1", "user_id": "rider"},
            {"ride_id": "ride-2", "user_id": "rider"},
        ]))
        mock_db.rides.find = MagicMock(return_value=FakeCursor([self._ride_doc()]))

        rides = await service.get_user_rides("rider", status=RideStatus.COMPLETED)

        assert len(rides) == 1
        assert mock_db.rides.find.call_args[0][0] == {
            "$or": [{"user_id": "rider"}, {"ride_id": {"$in": ["ride-1", "ride-2"]}}],
            "status": "completed",
        }
