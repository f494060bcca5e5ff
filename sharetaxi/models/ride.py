"""
Ride Model

Defines the ride and ride participant schemas for MongoDB persistence.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from sharetaxi.models.user import Building, User, UserPublic


class RideStatus(str, Enum):
    """Status of a ride. Only ACTIVE rides are matchable."""

    ACTIVE = "active"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RideType(str, Enum):
    OWN_CAR = "own_car"
    SHARED_CAB = "shared_cab"
    PUBLIC_TRANSPORT = "public_transport"
    WALKING = "walking"
    CYCLING = "cycling"
    TWO_WHEELER = "two_wheeler"


class GenderPreference(str, Enum):
    """Who the ride owner is willing to share with."""

    ANY = "any"
    SAME_GENDER = "same_gender"
    MALE = "male"
    FEMALE = "female"


class ParticipantRole(str, Enum):
    DRIVER = "driver"
    PASSENGER = "passenger"


class ParticipantStatus(str, Enum):
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Ride(BaseModel):
    """
    Ride model for MongoDB.

    Fields:
    - ride_id: Unique UUID for the ride
    - user_id: Owner (driver) of the ride
    - building_id: Building the ride departs from
    - destination_*: Destination label and coordinates
    - departure_time: Planned departure (UTC)
    - total_seats / available_seats: Capacity, available never exceeds total
    - cost_per_person: Estimated cost split, if cost sharing is on
    - gender_preference: Constraint applied when matching
    - max_detour_km: Largest destination deviation the owner accepts
    - route_distance_m: Route length, if known
    - expires_at: When the ride stops being listed
    """

    ride_id: str = Field(..., description="Unique ride ID")
    user_id: str = Field(..., description="Ride owner")
    building_id: str = Field(..., description="Origin building")
    type: RideType = Field(default=RideType.SHARED_CAB)
    status: RideStatus = Field(default=RideStatus.ACTIVE)
    destination_name: str = Field(..., description="Destination label")
    destination_address: str = Field(default="")
    destination_lat: float = Field(..., ge=-90, le=90)
    destination_lng: float = Field(..., ge=-180, le=180)
    departure_time: datetime = Field(..., description="Departure time (UTC)")
    flexibility_minutes: int = Field(default=15, ge=0, le=120)
    total_seats: int = Field(default=1, ge=1, le=6)
    available_seats: int = Field(default=0, ge=0)
    cost_sharing_enabled: bool = True
    estimated_cost: Optional[float] = Field(None, ge=0)
    cost_per_person: Optional[float] = Field(None, ge=0)
    gender_preference: GenderPreference = Field(default=GenderPreference.ANY)
    max_detour_km: float = Field(default=1.0, ge=0, le=5)
    route_distance_m: Optional[float] = Field(None, ge=0)
    purpose: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_seats(self) -> "Ride":
        if self.available_seats > self.total_seats:
            raise ValueError("available_seats cannot exceed total_seats")
        return self

    class Config:
        use_enum_values = True


class RideCreate(BaseModel):
    """Data required to create a new ride."""

    type: RideType = RideType.SHARED_CAB
    destination_name: str = Field(..., min_length=1, max_length=200)
    destination_address: str = Field(..., min_length=1, max_length=300)
    destination_lat: float = Field(..., ge=-90, le=90)
    destination_lng: float = Field(..., ge=-180, le=180)
    departure_time: datetime
    flexibility_minutes: int = Field(default=15, ge=0, le=120)
    total_seats: int = Field(default=1, ge=1, le=6)
    cost_sharing_enabled: bool = True
    estimated_cost: Optional[float] = Field(None, ge=0)
    gender_preference: GenderPreference = GenderPreference.ANY
    max_detour_km: float = Field(default=1.0, ge=0, le=5)
    purpose: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=500)


class RideParticipant(BaseModel):
    """A user riding in a ride, the owner included (as DRIVER)."""

    ride_id: str
    user_id: str
    role: ParticipantRole
    status: ParticipantStatus = ParticipantStatus.CONFIRMED
    joined_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        use_enum_values = True


class RideWithOwner(BaseModel):
    """A ride joined with its owning user and, when loaded, its building."""

    ride: Ride
    owner: User
    building: Optional[Building] = None


class ParticipantPublic(BaseModel):
    """A ride participant as shown on the ride details page."""

    user: UserPublic
    role: ParticipantRole
    status: ParticipantStatus

    class Config:
        use_enum_values = True


class RideDetails(BaseModel):
    """A ride with its owner, building and participants."""

    ride: Ride
    owner: UserPublic
    building: Optional[Building] = None
    participants: List[ParticipantPublic] = Field(default_factory=list)
