"""
Matching Service

Scores rides from the same building against a newly created ride and
records pending matches.

Scoring algorithm (weights from MatchingConfig):
1. Destination proximity (40%) - step function on destination distance
2. Time alignment (30%) - step function on departure difference
3. Trust score (20%) - candidate owner's trust score / 5
4. Previous interactions (10%) - constant until interaction history exists

Hard constraints (candidate skipped):
- Destination farther apart than the source ride's max detour
- Either ride wants SAME_GENDER and the owners' genders differ
- Overall score below the minimum score
"""

import asyncio
import logging
import math
import uuid
from datetime import timedelta
from typing import Any, List, Optional, Tuple

from pymongo.errors import DuplicateKeyError
from redis.exceptions import RedisError

from sharetaxi.config import DEFAULT_MATCHING_CONFIG, MatchingConfig, settings
from sharetaxi.models.match import (
    Match,
    MatchConfidence,
    MatchListResult,
    MatchReason,
    MatchResponseResult,
    MatchScore,
    MatchStatus,
    MatchingResult,
)
from sharetaxi.models.notification import NotificationType
from sharetaxi.models.ride import GenderPreference, RideStatus, RideWithOwner
from sharetaxi.models.user import TRUST_SCORE_MAX, normalize_gender
from sharetaxi.services.notification_service import NotificationService
from sharetaxi.services.redis_service import RedisService
from sharetaxi.services.ride_store import RideStore
from sharetaxi.utils.geo import calculate_distance, calculate_time_difference
from sharetaxi.utils.timezone_utils import ensure_utc, round_half_up, utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# Scoring
# =============================================================================

def calculate_match_score(
    destination_distance: float,
    time_difference: float,
    user_trust_score: float,
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
) -> MatchScore:
    """
    Score a candidate from its raw signals.

    Args:
        destination_distance: Meters between the two destinations
        time_difference: Minutes between the two departures
        user_trust_score: Candidate owner's trust score (0-5)
        config: Weights and constants to score with

    Breakpoints are steps, not a decay:
    - proximity: <=500m 1.0, <=1000m 0.8, <=2000m 0.6, else 0.4
    - time: <=5min 1.0, <=15min 0.9, <=30min 0.7, else 0.5
    """
    if destination_distance > 2000:
        destination_score = 0.4
    elif destination_distance > 1000:
        destination_score = 0.6
    elif destination_distance > 500:
        destination_score = 0.8
    else:
        destination_score = 1.0

    if time_difference > 30:
        time_score = 0.5
    elif time_difference > 15:
        time_score = 0.7
    elif time_difference > 5:
        time_score = 0.9
    else:
        time_score = 1.0

    trust_score = user_trust_score / TRUST_SCORE_MAX

    # No interaction history is recorded yet
    interactions_score = config.previous_interactions_score

    weights = config.weights
    overall = (
        destination_score * weights.destination_proximity +
        time_score * weights.time_alignment +
        trust_score * weights.trust_score +
        interactions_score * weights.previous_interactions
    )

    return MatchScore(
        destination_proximity=destination_score,
        time_alignment=time_score,
        trust_score=trust_score,
        previous_interactions=interactions_score,
        overall=round_half_up(overall, 2),
    )


def classify_confidence(
    score: float, config: MatchingConfig = DEFAULT_MATCHING_CONFIG
) -> MatchConfidence:
    if score >= config.high_confidence:
        return MatchConfidence.HIGH
    if score >= config.medium_confidence:
        return MatchConfidence.MEDIUM
    return MatchConfidence.LOW


def generate_match_reasons(
    scores: MatchScore, distance: float, time_difference: float
) -> List[str]:
    """Tags shown next to a match explaining why it was suggested."""
    reasons = []

    if scores.destination_proximity > 0.8:
        reasons.append(MatchReason.DESTINATION_PROXIMITY.value)
    if scores.time_alignment > 0.8:
        reasons.append(MatchReason.TIME_MATCH.value)
    if scores.trust_score > 0.85:
        reasons.append(MatchReason.HIGH_TRUST_SCORE.value)
    if distance < 500:
        reasons.append(MatchReason.SAME_DESTINATION.value)
    if time_difference < 5:
        reasons.append(MatchReason.PERFECT_TIMING.value)

    return reasons


def calculate_estimated_savings(
    distance_meters: float, config: MatchingConfig = DEFAULT_MATCHING_CONFIG
) -> float:
    """Half of a solo cab fare over the distance, rounded to whole rupees."""
    total_cost = (distance_meters / 1000) * config.savings_rate_per_km
    return float(math.floor(total_cost * 0.5 + 0.5))


def passes_gender_constraints(source: RideWithOwner, candidate: RideWithOwner) -> bool:
    """
    SAME_GENDER on either ride requires both owners to have the same gender.

    Owners without a gender compare equal to each other. MALE / FEMALE
    preferences restrict who may create the ride, not who it matches.
    """
    preferences = (source.ride.gender_preference, candidate.ride.gender_preference)
    if GenderPreference.SAME_GENDER not in preferences:
        return True
    return normalize_gender(source.owner.gender) == normalize_gender(candidate.owner.gender)


# =============================================================================
# Service
# =============================================================================

class MatchingService:
    """
    Matching engine for rides.

    Collaborators are injectable so the engine can run against any store
    and notifier; defaults use MongoDB, Redis and the notification service.
    """

    def __init__(
        self,
        store: Optional[RideStore] = None,
        notification_service: Optional[NotificationService] = None,
        redis_service: Optional[RedisService] = None,
        config: Optional[MatchingConfig] = None,
        ride_service=None,
    ):
        self.store = store or RideStore()
        self.notification_service = notification_service or NotificationService()
        self.redis_service = redis_service or RedisService()
        self.config = config or settings.matching_config
        self._ride_service = ride_service

    @property
    def ride_service(self):
        if self._ride_service is None:
            from sharetaxi.services.ride_service import RideService

            self._ride_service = RideService(matching_service=self)
        return self._ride_service

    # =========================================================================
    # Match Creation
    # =========================================================================

    async def trigger_matching(self, ride_id: str) -> MatchingResult:
        """
        Find and record pending matches for a just-created ride.

        Never raises. A candidate that fails is logged and skipped; failing
        to load the ride or its candidates fails the whole run.
        """
        redis_available, lock = await self._acquire_lock(ride_id)
        if redis_available and lock is None:
            return MatchingResult(success=False, error="Matching already in progress")

        try:
            return await self._run_matching(ride_id)
        except Exception:
            logger.exception(f"Matching algorithm error for ride {ride_id}")
            return MatchingResult(success=False, error="Matching failed")
        finally:
            if lock is not None:
                await self._release_lock(ride_id, lock)

    async def _acquire_lock(self, ride_id: str) -> Tuple[bool, Optional[Any]]:
        """
        Returns (redis_available, lock). The lock is None when another run
        holds it, or when Redis is unavailable (matching then proceeds
        unlocked; the pending-match index still prevents duplicates).
        """
        try:
            return True, await self.redis_service.acquire_matching_lock(ride_id)
        except (RedisError, RuntimeError) as e:
            logger.warning(f"Matching lock unavailable for ride {ride_id}: {e}")
            return False, None

    async def _release_lock(self, ride_id: str, lock: Any) -> None:
        try:
            released = await self.redis_service.release_matching_lock(lock)
            if not released:
                logger.warning(f"Matching for ride {ride_id} outlived its lock")
        except (RedisError, RuntimeError) as e:
            logger.warning(f"Could not release matching lock for ride {ride_id}: {e}")

    async def _run_matching(self, ride_id: str) -> MatchingResult:
        source = await self.store.find_ride_by_id(ride_id)
        if source is None:
            return MatchingResult(success=False, error="Ride not found")

        if source.ride.status != RideStatus.ACTIVE:
            return MatchingResult(success=False, error="Ride is not active")

        window = timedelta(minutes=self.config.time_window_minutes)
        departure = ensure_utc(source.ride.departure_time)

        candidates = await self.store.find_active_rides_in_window(
            building_id=source.ride.building_id,
            exclude_ride_id=source.ride.ride_id,
            exclude_user_id=source.ride.user_id,
            time_range_start=departure - window,
            time_range_end=departure + window,
        )

        logger.info(f"Scoring {len(candidates)} candidates for ride {ride_id}")

        matches_found = 0
        failed_candidates = 0
        notifications_failed = 0

        for candidate in candidates:
            try:
                match = await self._evaluate_candidate(source, candidate)
            except Exception as e:
                failed_candidates += 1
                logger.warning(
                    f"Candidate {candidate.ride.ride_id} failed for ride {ride_id}: {e}",
                    exc_info=True,
                )
                continue

            if match is None:
                continue

            matches_found += 1
            notifications_failed += await self._notify_match(source, candidate, match)

        logger.info(
            f"Matching for ride {ride_id} done: {matches_found} matches, "
            f"{failed_candidates} failed candidates"
        )

        return MatchingResult(
            success=True,
            matches_found=matches_found,
            failed_candidates=failed_candidates,
            notifications_failed=notifications_failed,
        )

    async def _evaluate_candidate(
        self, source: RideWithOwner, candidate: RideWithOwner
    ) -> Optional[Match]:
        """Apply constraints, score and persist one candidate. None if skipped."""
        ride = source.ride
        other = candidate.ride

        destination_distance = calculate_distance(
            ride.destination_lat,
            ride.destination_lng,
            other.destination_lat,
            other.destination_lng,
        )

        if destination_distance > ride.max_detour_km * 1000:
            logger.debug(f"Skip {other.ride_id}: destination {destination_distance:.0f}m away")
            return None

        time_difference = calculate_time_difference(
            ride.departure_time, other.departure_time
        )

        if not passes_gender_constraints(source, candidate):
            logger.debug(f"Skip {other.ride_id}: gender preference")
            return None

        scores = calculate_match_score(
            destination_distance=destination_distance,
            time_difference=time_difference,
            user_trust_score=candidate.owner.trust_score,
            config=self.config,
        )

        if scores.overall < self.config.minimum_score:
            logger.debug(f"Skip {other.ride_id}: score {scores.overall}")
            return None

        now = utc_now()

        existing = await self.store.find_pending_match(ride.ride_id, other.ride_id, now)
        if existing:
            logger.debug(f"Skip {other.ride_id}: pending match {existing.match_id} exists")
            return None

        if ride.cost_per_person:
            estimated_savings = ride.cost_per_person * 0.5
        else:
            estimated_savings = calculate_estimated_savings(destination_distance, self.config)

        co2_reduction = (destination_distance / 1000) * self.config.co2_kg_per_km

        match = Match(
            match_id=str(uuid.uuid4()),
            source_ride_id=ride.ride_id,
            target_user_id=other.user_id,
            target_ride_id=other.ride_id,
            score=scores.overall,
            confidence=classify_confidence(scores.overall, self.config),
            destination_proximity_score=scores.destination_proximity,
            time_alignment_score=scores.time_alignment,
            trust_score_compatibility=scores.trust_score,
            previous_interactions_score=scores.previous_interactions,
            destination_distance=int(round_half_up(destination_distance, 0)),
            time_difference=int(round_half_up(time_difference, 0)),
            estimated_savings=estimated_savings,
            co2_reduction=round_half_up(co2_reduction, 2),
            reasons=generate_match_reasons(scores, destination_distance, time_difference),
            status=MatchStatus.PENDING,
            created_at=now,
            expires_at=now + timedelta(minutes=self.config.match_ttl_minutes),
        )

        try:
            return await self.store.create_match(match)
        except DuplicateKeyError:
            logger.debug(f"Skip {other.ride_id}: concurrent pending match")
            return None

    async def _notify_match(
        self, source: RideWithOwner, candidate: RideWithOwner, match: Match
    ) -> int:
        """
        Tell both owners about the match. Only the source owner decides on
        it, so the candidate owner gets a heads-up rather than a prompt.
        Sends run concurrently and failures never affect the match. Returns
        the number of failed sends.
        """
        building_name = source.building.name if source.building else "your building"

        sends = [
            self.notification_service.send_push_notification(
                user_id=candidate.ride.user_id,
                title="🚕 Ride match suggested",
                body=(
                    f"{source.owner.display_name} from {building_name} "
                    f"may join your ride to {candidate.ride.destination_name}"
                ),
                data={
                    "match_id": match.match_id,
                    "ride_id": source.ride.ride_id,
                    "type": NotificationType.NEW_MATCH.value,
                },
                notification_type=NotificationType.NEW_MATCH,
            ),
            self.notification_service.send_push_notification(
                user_id=source.ride.user_id,
                title="🎉 Match Found!",
                body=(
                    f"{candidate.owner.display_name} is also going to "
                    f"{candidate.ride.destination_name}"
                ),
                data={
                    "match_id": match.match_id,
                    "target_ride_id": candidate.ride.ride_id,
                    "type": NotificationType.NEW_MATCH.value,
                },
                notification_type=NotificationType.NEW_MATCH,
            ),
        ]

        results = await asyncio.gather(*sends, return_exceptions=True)

        failed = 0
        for result in results:
            if isinstance(result, BaseException):
                failed += 1
                logger.warning(f"Match {match.match_id} notification raised: {result}")
            elif not result.success:
                failed += 1
                logger.warning(f"Match {match.match_id} notification failed: {result.error}")

        return failed

    # =========================================================================
    # Match Lifecycle
    # =========================================================================

    async def get_matches(self, ride_id: str) -> MatchListResult:
        """Pending, unexpired matches for a ride, best score first."""
        try:
            matches = await self.store.find_pending_matches(ride_id, utc_now())
            return MatchListResult(success=True, matches=matches)
        except Exception:
            logger.exception(f"Get matches error for ride {ride_id}")
            return MatchListResult(success=False, error="Failed to fetch matches")

    async def respond_to_match(
        self, match_id: str, accept: bool, responder_user_id: Optional[str] = None
    ) -> MatchResponseResult:
        """
        Accept or decline a pending match.

        When responder_user_id is given, only the source ride's owner may
        respond.

        Accepting also joins the source ride's owner to the target ride.
        The acceptance stands even if the join is refused (e.g. no seats
        left); the refusal is reported in join_error.
        """
        try:
            match = await self.store.find_match_by_id(match_id)
            if not match:
                return MatchResponseResult(success=False, error="Match not found")

            if responder_user_id is not None:
                source = await self.store.find_ride_by_id(match.source_ride_id)
                if source is None or source.ride.user_id != responder_user_id:
                    return MatchResponseResult(
                        success=False, error="Not allowed to respond to this match"
                    )

            if match.status != MatchStatus.PENDING:
                return MatchResponseResult(
                    success=False, status=match.status, error="Match already responded"
                )

            now = utc_now()

            if ensure_utc(match.expires_at) <= now:
                await self.store.update_match_status(match_id, MatchStatus.EXPIRED, None)
                return MatchResponseResult(
                    success=False, status=MatchStatus.EXPIRED, error="Match expired"
                )

            new_status = MatchStatus.ACCEPTED if accept else MatchStatus.DECLINED
            updated = await self.store.update_match_status(match_id, new_status, now)
            if updated is None:
                return MatchResponseResult(success=False, error="Match already responded")

            result = MatchResponseResult(success=True, status=new_status)

            if accept:
                result.joined_ride_id, result.join_error = await self._join_target_ride(match)

            return result

        except Exception:
            logger.exception(f"Respond to match error for {match_id}")
            return MatchResponseResult(success=False, error="Failed to respond to match")

    async def _join_target_ride(self, match: Match) -> Tuple[Optional[str], Optional[str]]:
        """Join the source owner to the target ride. Returns (ride_id, error)."""
        source = await self.store.find_ride_by_id(match.source_ride_id)
        if source is None:
            return None, "Ride not found"

        try:
            await self.ride_service.join_ride(match.target_ride_id, source.ride.user_id)
        except ValueError as e:
            logger.info(f"Accepted match {match.match_id} but join refused: {e}")
            return None, str(e)

        return match.target_ride_id, None
