"""User Model - Defines the user and building schemas for MongoDB persistence."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


TRUST_SCORE_MAX = 5.0

_GENDER_ALIASES = {
    "m": "male",
    "male": "male",
    "f": "female",
    "female": "female",
}


def normalize_gender(gender: Optional[str]) -> Optional[str]:
    """Map stored gender values ("M", "Female", ...) to "male"/"female"/other."""
    if not gender or not gender.strip():
        return None
    value = gender.strip().lower()
    return _GENDER_ALIASES.get(value, value)


class User(BaseModel):
    """
    User model for MongoDB.

    Fields:
    - user_id: Internal immutable UUID
    - display_name: Shown to matched riders
    - phone: Phone number used for login
    - gender: Optional gender, used by gender-preference constraints
    - building_id: Residential building the user belongs to
    - trust_score: Average received rating on the 0.0-5.0 scale
    - total_rides: Completed rides counter
    - fcm_token: Push token, if the device registered one
    """
    user_id: str = Field(..., description="Internal UUID")
    display_name: str = Field(..., description="Display name")
    phone: Optional[str] = Field(None, description="Phone number")
    gender: Optional[str] = Field(None, description="M/F/O or None")
    photo_url: Optional[str] = Field(None, description="Profile photo URL")
    building_id: Optional[str] = Field(None, description="Home building")
    trust_score: float = Field(
        default=TRUST_SCORE_MAX, ge=0.0, le=TRUST_SCORE_MAX,
        description="Average rating (0-5)"
    )
    total_rides: int = Field(default=0, ge=0)
    fcm_token: Optional[str] = Field(None, description="FCM token for push notifications")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def trust_percent(self) -> float:
        """Trust score on the 0-100 display scale."""
        return round(self.trust_score * 20, 1)


class UserPublic(BaseModel):
    """Public user data shown to other users."""
    user_id: str
    display_name: str
    photo_url: Optional[str] = None
    trust_score: float
    total_rides: int = 0


class Building(BaseModel):
    """A residential building; rides are matched within one building."""
    building_id: str = Field(..., description="Unique building ID")
    name: str = Field(..., description="Building name")
    area: Optional[str] = None
    city: Optional[str] = None
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
