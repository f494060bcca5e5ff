"""ShareTaxi Models Package"""

from sharetaxi.models.user import User, UserPublic, Building
from sharetaxi.models.ride import (
    Ride, RideCreate, RideStatus, RideType, GenderPreference,
    RideParticipant, ParticipantRole, ParticipantStatus, RideWithOwner,
    ParticipantPublic, RideDetails,
)
from sharetaxi.models.match import (
    Match, MatchStatus, MatchConfidence, MatchReason, MatchScore,
    MatchingResult, MatchListResult, MatchResponseResult,
)
from sharetaxi.models.rating import Rating, RatingCreate, RatingResponse
from sharetaxi.models.notification import Notification, NotificationType, PushResult
from sharetaxi.models.safety import (
    SOSAlert, SOSCreate, SOSStatus, EmergencyContact, EmergencyContactCreate,
)
from sharetaxi.models.analytics import (
    UserStatistics, UserAnalytics, RideHistoryEntry, LeaderboardType, LeaderboardEntry,
)

__all__ = [
    "User", "UserPublic", "Building",
    "Ride", "RideCreate", "RideStatus", "RideType", "GenderPreference",
    "RideParticipant", "ParticipantRole", "ParticipantStatus", "RideWithOwner",
    "ParticipantPublic", "RideDetails",
    "Match", "MatchStatus", "MatchConfidence", "MatchReason", "MatchScore",
    "MatchingResult", "MatchListResult", "MatchResponseResult",
    "Rating", "RatingCreate", "RatingResponse",
    "Notification", "NotificationType", "PushResult",
    "SOSAlert", "SOSCreate", "SOSStatus", "EmergencyContact", "EmergencyContactCreate",
    "UserStatistics", "UserAnalytics", "RideHistoryEntry", "LeaderboardType", "LeaderboardEntry",
]
