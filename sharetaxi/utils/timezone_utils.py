"""Centralized Timezone Utilities - All datetime operations should use these functions."""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

UTC = timezone.utc


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes read back from MongoDB as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def round_half_up(value: float, places: int = 2) -> float:
    """
    Round on the exact binary value with ties going up.

    Python's round() sends exact ties to the even neighbour; stored scores,
    savings and CO2 figures always round ties away from zero.
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))
