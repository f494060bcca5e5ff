"""
Geo Utilities

Great-circle distance, time deltas and display formatting.
"""

import math
from datetime import datetime

from sharetaxi.utils.timezone_utils import ensure_utc

EARTH_RADIUS_METERS = 6371e3


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Haversine distance between two coordinates, in meters.

    Inputs are not validated; see is_valid_coordinates.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_phi / 2) ** 2 +
        math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def calculate_distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    return calculate_distance(lat1, lng1, lat2, lng2) / 1000


def calculate_time_difference(time1: datetime, time2: datetime) -> float:
    """Absolute difference between two datetimes, in minutes."""
    return abs((ensure_utc(time1) - ensure_utc(time2)).total_seconds()) / 60


def format_distance(meters: float) -> str:
    """Format distance for display: "450m" or "1.2km"."""
    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.1f}km"


def format_time(minutes: float) -> str:
    """Format a duration for display: "12 min" or "1h 5min"."""
    if minutes < 60:
        return f"{round(minutes)} min"
    hours = int(minutes // 60)
    mins = round(minutes % 60)
    return f"{hours}h {mins}min"


def is_within_radius(
    lat1: float,
    lng1: float,
    lat2: float,
    lng2: float,
    radius_meters: float
) -> bool:
    """True if the second point lies within radius_meters of the first."""
    return calculate_distance(lat1, lng1, lat2, lng2) <= radius_meters


def is_valid_coordinates(lat: float, lng: float) -> bool:
    if lat is None or lng is None:
        return False
    if math.isnan(lat) or math.isnan(lng):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180
