"""
Safety Model - SOS alerts raised during a ride and the emergency contacts
told about them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SOSStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"


class SOSAlert(BaseModel):
    """
    SOS alert model for MongoDB.

    Fields:
    - sos_id: Unique UUID for the alert
    - user_id: User who raised it
    - ride_id: Ride the user was on
    - latitude / longitude: Where the alert was raised
    - message: Optional note from the user
    - status: ACTIVE until the user resolves it
    - resolved_at: When it was resolved
    """
    sos_id: str = Field(..., description="Unique SOS alert ID")
    user_id: str
    ride_id: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    message: Optional[str] = Field(None, max_length=500)
    status: SOSStatus = Field(default=SOSStatus.ACTIVE)
    notified_users: int = 0
    notified_contacts: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    resolved_at: Optional[datetime] = None

    class Config:
        use_enum_values = True


class SOSCreate(BaseModel):
    """Data required to raise an SOS alert."""
    ride_id: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    message: Optional[str] = Field(None, max_length=500)


class EmergencyContact(BaseModel):
    """Person told by SMS when the user raises an SOS alert."""
    contact_id: str = Field(..., description="Unique contact ID")
    user_id: str
    name: str
    phone_number: str
    relationship: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EmergencyContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone_number: str = Field(..., pattern=r"^\+?[1-9]\d{1,14}$", description="E.164 phone number")
    relationship: str = Field(..., min_length=1, max_length=50)
