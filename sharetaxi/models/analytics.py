"""Analytics Model - Per-user ride statistics, ride history and leaderboards."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from sharetaxi.models.ride import ParticipantRole, ParticipantStatus, Ride


class UserStatistics(BaseModel):
    """
    Lifetime totals for one user, upserted when a ride completes.

    Stored in the user_statistics collection keyed by user_id.
    """
    user_id: str
    total_co2_saved: float = 0.0
    total_distance_shared: float = 0.0
    money_saved: float = 0.0
    total_rides: int = 0
    rides_as_driver: int = 0
    rides_as_passenger: int = 0
    points: int = 0
    last_ride_at: Optional[datetime] = None


class RideHistoryEntry(BaseModel):
    """One ride the user took part in, with their part in it."""
    ride: Ride
    role: ParticipantRole
    participant_status: ParticipantStatus

    class Config:
        use_enum_values = True


class UserAnalytics(BaseModel):
    user_id: str
    total_rides: int
    rides_as_driver: int
    rides_as_passenger: int
    monthly_rides: int
    total_savings: float
    co2_saved: float
    points: int
    trust_score: float
    avg_rating: float
    total_ratings: int
    level: Dict[str, Any]
    recent_rides: List[RideHistoryEntry] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class LeaderboardType(str, Enum):
    RIDES = "rides"
    SAVINGS = "savings"
    CO2 = "co2"


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    display_name: str
    photo_url: Optional[str] = None
    trust_score: float
    total_rides: int = 0
    money_saved: float = 0.0
    co2_saved: float = 0.0
