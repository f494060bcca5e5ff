"""ShareTaxi Routers Package"""

from sharetaxi.routers import (
    rides,
    matches,
    ratings,
    notifications,
    safety,
    analytics,
)

__all__ = [
    "rides",
    "matches",
    "ratings",
    "notifications",
    "safety",
    "analytics",
]
