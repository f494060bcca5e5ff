"""
Notification Model - Defines the notification schema for in-app and push
notifications.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class NotificationType(str, Enum):
    """Type of notification."""

    NEW_MATCH = "new_match"
    MATCH_ACCEPTED = "match_accepted"
    MATCH_DECLINED = "match_declined"
    MEMBER_JOINED = "member_joined"
    RIDE_CANCELLED = "ride_cancelled"
    RIDE_COMPLETED = "ride_completed"
    SOS_ALERT = "sos_alert"
    SYSTEM = "system"


class Notification(BaseModel):
    """
    Notification model for MongoDB.

    Every push is also stored here for the in-app notification center.
    """

    notification_id: str = Field(..., description="Unique notification ID")
    user_id: str = Field(..., description="Target user ID")
    type: NotificationType
    title: str = Field(..., description="Notification title")
    body: str = Field(..., description="Notification body")
    data: Optional[dict] = Field(None, description="Additional data")
    read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        use_enum_values = True


class PushResult(BaseModel):
    """Delivery outcome of a single push send."""
    success: bool
    notification_id: Optional[str] = None
    error: Optional[str] = None
