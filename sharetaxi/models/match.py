"""
Match Model

A scored, time-limited pairing between a source ride and another user's
ride. Matches are never deleted; they move from PENDING to ACCEPTED or
DECLINED once, or count as expired once expires_at has passed.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class MatchStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class MatchConfidence(str, Enum):
    """Score bucket shown in the UI."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MatchReason(str, Enum):
    DESTINATION_PROXIMITY = "destination_proximity"
    TIME_MATCH = "time_match"
    HIGH_TRUST_SCORE = "high_trust_score"
    SAME_DESTINATION = "same_destination"
    PERFECT_TIMING = "perfect_timing"


class MatchScore(BaseModel):
    """Component scores and their weighted total, all in [0, 1]."""
    destination_proximity: float
    time_alignment: float
    trust_score: float
    previous_interactions: float
    overall: float


class Match(BaseModel):
    """
    Match model for MongoDB.

    Fields:
    - match_id: Unique UUID
    - source_ride_id: Ride that triggered matching
    - target_user_id / target_ride_id: The matched ride and its owner
    - score, confidence: Weighted total (2 decimals) and its tier
    - *_score: The four component scores
    - destination_distance: Meters between destinations (rounded)
    - time_difference: Minutes between departures (rounded)
    - estimated_savings: INR saved by sharing
    - co2_reduction: kg CO2 avoided (2 decimals)
    - reasons: Tags explaining the match
    - expires_at: Fixed at creation, never extended
    - responded_at: When the match was accepted or declined
    """
    match_id: str = Field(..., description="Unique match ID")
    source_ride_id: str
    target_user_id: str
    target_ride_id: str
    score: float = Field(..., ge=0.0, le=1.0)
    confidence: MatchConfidence
    destination_proximity_score: float
    time_alignment_score: float
    trust_score_compatibility: float
    previous_interactions_score: float
    destination_distance: int = Field(..., ge=0, description="Meters")
    time_difference: int = Field(..., ge=0, description="Minutes")
    estimated_savings: float = Field(..., ge=0)
    co2_reduction: float = Field(..., ge=0, description="kg CO2")
    reasons: List[str] = Field(default_factory=list)
    status: MatchStatus = Field(default=MatchStatus.PENDING)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime
    responded_at: Optional[datetime] = None

    class Config:
        use_enum_values = True


# =============================================================================
# Operation Results
# =============================================================================

class MatchingResult(BaseModel):
    """Outcome of one matching run for a ride."""
    success: bool
    matches_found: int = 0
    failed_candidates: int = 0
    notifications_failed: int = 0
    error: Optional[str] = None


class MatchListResult(BaseModel):
    success: bool
    matches: List[Match] = Field(default_factory=list)
    error: Optional[str] = None


class MatchResponseResult(BaseModel):
    success: bool
    status: Optional[MatchStatus] = None
    joined_ride_id: Optional[str] = None
    join_error: Optional[str] = None
    error: Optional[str] = None

    class Config:
        use_enum_values = True
