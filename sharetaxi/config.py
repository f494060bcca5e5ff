from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class ScoringWeights:
    """Weights of the four match signals. They sum to 1.0."""

    destination_proximity: float = 0.40
    time_alignment: float = 0.30
    trust_score: float = 0.20
    previous_interactions: float = 0.10


@dataclass(frozen=True)
class MatchingConfig:
    """
    Immutable matching configuration.

    Passed explicitly into the scoring and matching code so that both stay
    pure and testable with alternative values.
    """

    weights: ScoringWeights = field(default_factory=ScoringWeights)
    minimum_score: float = 0.60
    high_confidence: float = 0.85
    medium_confidence: float = 0.70
    time_window_minutes: int = 30
    match_ttl_minutes: int = 15
    previous_interactions_score: float = 0.7
    savings_rate_per_km: float = 12.0
    co2_kg_per_km: float = 0.21


DEFAULT_MATCHING_CONFIG = MatchingConfig()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==========================================================================
    # MongoDB Configuration
    # ==========================================================================
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "sharetaxi"

    # ==========================================================================
    # Redis Configuration
    # ==========================================================================
    redis_url: str = "redis://localhost:6379/0"

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    api_v1_str: str = "/api/v1"
    debug: bool = False
    cors_origins: str = "*"
    log_level: str = "INFO"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse comma-separated CORS origins into list."""
        if self.cors_origins == "*":
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # ==========================================================================
    # Matching Configuration
    # ==========================================================================
    match_time_window_minutes: int = 30  # +/- window around departure
    match_ttl_minutes: int = 15
    min_match_score: float = 0.60
    high_confidence_score: float = 0.85
    medium_confidence_score: float = 0.70
    matching_lock_seconds: int = 60
    savings_rate_per_km: float = 12.0  # INR per km for a solo cab
    co2_kg_per_km: float = 0.21

    # ==========================================================================
    # Ride Configuration
    # ==========================================================================
    ride_ttl_hours: int = 24
    default_route_distance_km: float = 10.0
    active_rides_limit: int = 20
    search_rides_limit: int = 30
    user_rides_limit: int = 50
    ride_history_limit: int = 20
    leaderboard_limit: int = 10

    @property
    def matching_config(self) -> MatchingConfig:
        """Build the immutable matching configuration from settings."""
        return MatchingConfig(
            minimum_score=self.min_match_score,
            high_confidence=self.high_confidence_score,
            medium_confidence=self.medium_confidence_score,
            time_window_minutes=self.match_time_window_minutes,
            match_ttl_minutes=self.match_ttl_minutes,
            savings_rate_per_km=self.savings_rate_per_km,
            co2_kg_per_km=self.co2_kg_per_km,
        )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", case_sensitive=False
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to avoid re-reading env vars on every request.
    """
    return Settings()


# Convenience export
settings = get_settings()
