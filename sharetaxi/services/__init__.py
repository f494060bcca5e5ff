"""ShareTaxi Services Package"""

from sharetaxi.services.ride_store import RideStore
from sharetaxi.services.matching_service import MatchingService
from sharetaxi.services.ride_service import RideService
from sharetaxi.services.rating_service import RatingService
from sharetaxi.services.notification_service import NotificationService
from sharetaxi.services.redis_service import RedisService
from sharetaxi.services.safety_service import SafetyService
from sharetaxi.services.analytics_service import AnalyticsService

__all__ = [
    "RideStore",
    "MatchingService",
    "RideService",
    "RatingService",
    "NotificationService",
    "RedisService",
    "SafetyService",
    "AnalyticsService",
]
