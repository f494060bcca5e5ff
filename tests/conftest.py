"""
Shared test fixtures.

In-memory stand-ins for the ride store, the notifier and the Redis lock so
the matching engine can be exercised without MongoDB or Redis.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest
from pymongo.errors import DuplicateKeyError

from sharetaxi.config import DEFAULT_MATCHING_CONFIG
from sharetaxi.models.match import Match, MatchStatus
from sharetaxi.models.notification import PushResult
from sharetaxi.models.ride import Ride, RideStatus, RideWithOwner
from sharetaxi.models.user import Building, User
from sharetaxi.services.matching_service import MatchingService
from sharetaxi.utils.timezone_utils import ensure_utc


BASE_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeCursor:
    """Async cursor over a fixed list of documents, like Motor's."""

    def __init__(self, docs):
        self._docs = list(docs)

    def sort(self, *args, **kwargs):
        return self

    def limit(self, n):
        self._docs = self._docs[:n]
        return self

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self._docs:
            yield doc


class FakeRideStore:
    """Dict-backed ride store with the same contract as RideStore."""

    def __init__(self):
        self.rides: Dict[str, RideWithOwner] = {}
        self.matches: Dict[str, Match] = {}
        self.fail_on_targets = set()

    def add(self, ride_with_owner: RideWithOwner) -> RideWithOwner:
        self.rides[ride_with_owner.ride.ride_id] = ride_with_owner
        return ride_with_owner

    async def find_ride_by_id(self, ride_id: str) -> Optional[RideWithOwner]:
        return self.rides.get(ride_id)

    async def find_active_rides_in_window(
        self, building_id, exclude_ride_id, exclude_user_id,
        time_range_start, time_range_end
    ) -> List[RideWithOwner]:
        found = [
            item for item in self.rides.values()
            if item.ride.ride_id != exclude_ride_id
            and item.ride.user_id != exclude_user_id
            and item.ride.status == RideStatus.ACTIVE
            and item.ride.building_id == building_id
            and time_range_start <= ensure_utc(item.ride.departure_time) <= time_range_end
        ]
        return sorted(found, key=lambda item: item.ride.created_at)

    async def create_match(self, match: Match) -> Match:
        if match.target_ride_id in self.fail_on_targets:
            raise RuntimeError("store unavailable")
        for existing in self.matches.values():
            if (
                existing.source_ride_id == match.source_ride_id
                and existing.target_ride_id == match.target_ride_id
                and existing.status == MatchStatus.PENDING
            ):
                raise DuplicateKeyError("unique_pending_match_per_pair")
        self.matches[match.match_id] = match
        return match

    async def find_pending_match(self, source_ride_id, target_ride_id, now):
        for match in self.matches.values():
            if (
                match.source_ride_id == source_ride_id
                and match.target_ride_id == target_ride_id
                and match.status == MatchStatus.PENDING
                and ensure_utc(match.expires_at) > now
            ):
                return match
        return None

    async def find_pending_matches(self, source_ride_id, now):
        pending = [
            match for match in self.matches.values()
            if match.source_ride_id == source_ride_id
            and match.status == MatchStatus.PENDING
            and ensure_utc(match.expires_at) > now
        ]
        return sorted(pending, key=lambda m: (-m.score, m.created_at))

    async def find_match_by_id(self, match_id):
        return self.matches.get(match_id)

    async def update_match_status(self, match_id, status, responded_at):
        match = self.matches.get(match_id)
        if match is None or match.status != MatchStatus.PENDING:
            return None
        updated = match.model_copy(update={
            "status": MatchStatus(status).value,
            "responded_at": responded_at,
        })
        self.matches[match_id] = updated
        return updated


class FakeNotifier:
    """Records sends. Users in fail_for get a failed result, raise_for raise."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()
        self.raise_for = set()

    async def send_push_notification(
        self, user_id, title, body, data=None, notification_type=None
    ) -> PushResult:
        if user_id in self.raise_for:
            raise ConnectionError("push gateway down")
        if user_id in self.fail_for:
            return PushResult(success=False, error="invalid token")
        self.sent.append({"user_id": user_id, "title": title, "body": body, "data": data})
        return PushResult(success=True, notification_id=f"n-{len(self.sent)}")


class FakeLock:
    def __init__(self, ride_id: str, token: str):
        self.ride_id = ride_id
        self.token = token


class FakeRedisService:
    """Token-owned locks keyed by ride id, like RedisService."""

    def __init__(self):
        self.held: Dict[str, str] = {}
        self.unavailable = False
        self._tokens = 0

    async def acquire_matching_lock(self, ride_id: str) -> Optional[FakeLock]:
        if self.unavailable:
            raise RuntimeError("Redis not initialized")
        if ride_id in self.held:
            return None
        self._tokens += 1
        lock = FakeLock(ride_id, f"token-{self._tokens}")
        self.held[ride_id] = lock.token
        return lock

    async def release_matching_lock(self, lock: FakeLock) -> bool:
        if self.held.get(lock.ride_id) != lock.token:
            return False
        del self.held[lock.ride_id]
        return True


# =============================================================================
# Builders
# =============================================================================

def make_user(user_id: str, trust_score: float = 5.0, gender: Optional[str] = None, **kwargs) -> User:
    return User(
        user_id=user_id,
        display_name=kwargs.pop("display_name", user_id.title()),
        trust_score=trust_score,
        gender=gender,
        building_id=kwargs.pop("building_id", "bldg-1"),
        **kwargs,
    )


def make_ride(
    ride_id: str,
    user_id: str,
    lat: float = 12.9716,
    lng: float = 77.5946,
    departure: datetime = BASE_TIME,
    **kwargs,
) -> Ride:
    return Ride(
        ride_id=ride_id,
        user_id=user_id,
        building_id=kwargs.pop("building_id", "bldg-1"),
        destination_name=kwargs.pop("destination_name", "MG Road"),
        destination_lat=lat,
        destination_lng=lng,
        departure_time=departure,
        **kwargs,
    )


def make_ride_with_owner(ride: Ride, owner: User, with_building: bool = True) -> RideWithOwner:
    building = Building(building_id=ride.building_id, name="Prestige Towers") if with_building else None
    return RideWithOwner(ride=ride, owner=owner, building=building)


def make_match(match_id: str, source_ride_id: str, target_ride_id: str, **kwargs) -> Match:
    created_at = kwargs.pop("created_at", datetime.now(timezone.utc))
    return Match(
        match_id=match_id,
        source_ride_id=source_ride_id,
        target_user_id=kwargs.pop("target_user_id", "user-b"),
        target_ride_id=target_ride_id,
        score=kwargs.pop("score", 0.9),
        confidence=kwargs.pop("confidence", "high"),
        destination_proximity_score=1.0,
        time_alignment_score=1.0,
        trust_score_compatibility=1.0,
        previous_interactions_score=0.7,
        destination_distance=kwargs.pop("destination_distance", 100),
        time_difference=kwargs.pop("time_difference", 3),
        estimated_savings=0.0,
        co2_reduction=0.02,
        created_at=created_at,
        expires_at=kwargs.pop("expires_at", created_at + timedelta(minutes=15)),
        **kwargs,
    )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def store():
    return FakeRideStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def redis_service():
    return FakeRedisService()


@pytest.fixture
def matching_service(store, notifier, redis_service):
    return MatchingService(
        store=store,
        notification_service=notifier,
        redis_service=redis_service,
        config=DEFAULT_MATCHING_CONFIG,
    )
