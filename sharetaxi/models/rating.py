"""Rating Model - Model for storing user ratings after rides."""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field


class Rating(BaseModel):
    """
    Rating submitted by one participant for another after a ride.

    The average of received scores is the user's trust score.
    """
    rating_id: str = Field(..., description="Unique rating ID")
    ride_id: str = Field(..., description="Ride this rating is for")
    rater_user_id: str = Field(..., description="User who gave the rating")
    rated_user_id: str = Field(..., description="User who received the rating")
    score: int = Field(..., ge=1, le=5, description="1-5 star rating")
    punctuality: Optional[int] = Field(None, ge=1, le=5)
    communication: Optional[int] = Field(None, ge=1, le=5)
    cleanliness: Optional[int] = Field(None, ge=1, le=5)
    driving: Optional[int] = Field(None, ge=1, le=5)
    friendliness: Optional[int] = Field(None, ge=1, le=5)
    tags: List[str] = Field(default_factory=list)
    feedback: Optional[str] = Field(None, max_length=500)
    would_ride_again: bool = True
    is_public: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RatingCreate(BaseModel):
    """Data required to submit a rating."""
    ride_id: str
    rated_user_id: str
    score: int = Field(..., ge=1, le=5)
    punctuality: Optional[int] = Field(None, ge=1, le=5)
    communication: Optional[int] = Field(None, ge=1, le=5)
    cleanliness: Optional[int] = Field(None, ge=1, le=5)
    driving: Optional[int] = Field(None, ge=1, le=5)
    friendliness: Optional[int] = Field(None, ge=1, le=5)
    tags: List[str] = Field(default_factory=list)
    feedback: Optional[str] = Field(None, max_length=500)
    would_ride_again: bool = True


class RatingResponse(BaseModel):
    """Rating response for API."""
    rating_id: str
    rated_user_id: str
    score: int
    created_at: datetime
