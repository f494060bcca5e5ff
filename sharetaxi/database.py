"""
ShareTaxi Database Module

MongoDB and Redis connection management.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import OperationFailure

from sharetaxi.config import settings

logger = logging.getLogger(__name__)


# =============================================================================
# MongoDB Connection
# =============================================================================

class MongoDB:
    """MongoDB connection manager."""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None


mongo = MongoDB()


async def create_indexes(db: AsyncIOMotorDatabase):
    """Create the indexes the services rely on."""
    await db.users.create_index("user_id", unique=True)
    await db.users.create_index("building_id")
    await db.buildings.create_index("building_id", unique=True)

    # Candidate retrieval: building + status + departure window
    await db.rides.create_index("ride_id", unique=True)
    await db.rides.create_index("user_id")
    await db.rides.create_index([
        ("building_id", 1),
        ("status", 1),
        ("departure_time", 1)
    ])

    await db.ride_participants.create_index(
        [("ride_id", 1), ("user_id", 1)], unique=True
    )
    await db.ride_participants.create_index("user_id")

    await db.matches.create_index("match_id", unique=True)
    await db.matches.create_index([
        ("source_ride_id", 1),
        ("status", 1),
        ("expires_at", 1)
    ])

    # Only one pending match per (source ride, target ride) pair
    try:
        await db.matches.create_index(
            [("source_ride_id", 1), ("target_ride_id", 1)],
            unique=True,
            partialFilterExpression={"status": "pending"},
            name="unique_pending_match_per_pair"
        )
    except OperationFailure as e:
        logger.warning(f"Could not create pending match index: {e}")

    await db.ratings.create_index("rating_id", unique=True)
    await db.ratings.create_index(
        [("ride_id", 1), ("rater_user_id", 1), ("rated_user_id", 1)],
        unique=True
    )
    await db.ratings.create_index("rated_user_id")

    await db.notifications.create_index("notification_id", unique=True)
    await db.notifications.create_index([("user_id", 1), ("read", 1)])

    await db.user_statistics.create_index("user_id", unique=True)
    await db.user_statistics.create_index([("money_saved", -1)])
    await db.user_statistics.create_index([("total_co2_saved", -1)])
    await db.users.create_index([("total_rides", -1)])

    await db.sos_alerts.create_index("sos_id", unique=True)
    await db.sos_alerts.create_index("user_id")
    await db.sos_alerts.create_index("ride_id")

    await db.emergency_contacts.create_index("contact_id", unique=True)
    await db.emergency_contacts.create_index("user_id")


async def init_mongodb():
    """Initialize MongoDB connection and create indexes."""
    mongo.client = AsyncIOMotorClient(settings.mongodb_uri)
    mongo.db = mongo.client[settings.mongodb_database]
    await create_indexes(mongo.db)


async def close_mongodb():
    """Close MongoDB connection."""
    if mongo.client:
        mongo.client.close()


def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    if mongo.db is None:
        raise RuntimeError("Database not initialized")
    return mongo.db


# =============================================================================
# Redis Connection
# =============================================================================

class RedisClient:
    """Redis connection manager."""

    client: Optional[redis.Redis] = None


redis_client = RedisClient()


async def init_redis():
    """Initialize Redis connection."""
    redis_client.client = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        health_check_interval=30,
        socket_connect_timeout=5,
        retry_on_timeout=True,
        socket_keepalive=True
    )


async def close_redis():
    """Close Redis connection."""
    if redis_client.client:
        await redis_client.client.close()


def get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if redis_client.client is None:
        raise RuntimeError("Redis not initialized")
    return redis_client.client


# =============================================================================
# Combined Initialization
# =============================================================================

async def init_db():
    """Initialize all database connections."""
    await init_mongodb()
    await init_redis()


async def close_db():
    """Close all database connections."""
    await close_mongodb()
    await close_redis()
