"""Redis Service - Redis key management for ephemeral matching state."""

import logging
from typing import Optional

from redis.asyncio.lock import Lock
from redis.exceptions import LockError

from sharetaxi.config import settings
from sharetaxi.database import get_redis

logger = logging.getLogger(__name__)


# =============================================================================
# Redis Key Naming Convention
# =============================================================================
#
# All keys are namespaced under "sharetaxi:" prefix.
#
# Key patterns:
# - sharetaxi:matching:lock:{ride_id} - Held while a matching run is active,
#   value is the holding run's token
#
# TTL rules:
# - Matching lock: MATCHING_LOCK_SECONDS, so a crashed run never blocks
#   the ride forever
#
# =============================================================================


class RedisKeys:
    """Redis key builders."""

    @staticmethod
    def matching_lock(ride_id: str) -> str:
        return f"sharetaxi:matching:lock:{ride_id}"


class RedisService:
    """
    Redis service for short-lived coordination state.

    MongoDB is the source of truth; nothing here needs to survive a restart.
    """

    def __init__(self):
        self.lock_ttl_seconds = settings.matching_lock_seconds

    async def acquire_matching_lock(self, ride_id: str) -> Optional[Lock]:
        """
        Claim the matching lock for a ride.

        Returns the held lock, or None if another matching run holds it.
        The lock stores a random token (SET NX PX) so only its holder can
        release it.
        """
        redis = get_redis()
        lock = redis.lock(
            RedisKeys.matching_lock(ride_id),
            timeout=self.lock_ttl_seconds,
        )
        if await lock.acquire(blocking=False):
            return lock
        return None

    async def release_matching_lock(self, lock: Lock) -> bool:
        """
        Release a lock claimed by acquire_matching_lock.

        If the lock expired and another run claimed it meanwhile, the other
        run's lock is left alone and False is returned.
        """
        try:
            await lock.release()
        except LockError as e:
            logger.warning(f"Matching lock {lock.name} no longer held: {e}")
            return False
        return True
