"""
ShareTaxi Backend - FastAPI Application

Main application entry point with middleware, routers, and OpenAPI
documentation.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sharetaxi import __version__
from sharetaxi.config import settings
from sharetaxi.database import init_db, close_db, get_db, get_redis
from sharetaxi.routers import rides, matches, ratings, notifications, safety, analytics


logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    Opens MongoDB and Redis on startup, creating indexes, and closes them
    on shutdown.
    """
    await init_db()

    try:
        await get_db().client.admin.command("ping")
        logger.info("Connected to MongoDB")
    except Exception as e:
        logger.error(f"FAILED to connect to MongoDB: {e}")

    try:
        await get_redis().ping()
        logger.info("Redis connected")
    except Exception as e:
        logger.error(f"FAILED to connect to Redis: {e}")

    yield

    await close_db()


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="ShareTaxi API",
    description="""
    ShareTaxi - shared rides between neighbours of the same building.

    ## Features
    - Ride creation with automatic matching by destination and departure time
    - Match suggestions with confidence tiers, savings and CO2 estimates
    - Joining, cancelling and completing rides with CO2 accounting
    - Post-ride ratings feeding each user's trust score

    ## Identity
    Requests carry the caller's user id in the `X-User-Id` header, set by
    the authenticating gateway.
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# =============================================================================
# Middleware
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Log unhandled errors and answer with a plain message."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Something went wrong. Please try again shortly."},
    )


# =============================================================================
# Routers
# =============================================================================

app.include_router(rides.router, prefix=f"{settings.api_v1_str}/rides", tags=["Rides"])
app.include_router(matches.router, prefix=f"{settings.api_v1_str}/matches", tags=["Matches"])
app.include_router(ratings.router, prefix=f"{settings.api_v1_str}/ratings", tags=["Ratings"])
app.include_router(
    notifications.router,
    prefix=f"{settings.api_v1_str}/notifications",
    tags=["Notifications"],
)
app.include_router(safety.router, prefix=f"{settings.api_v1_str}/safety", tags=["Safety"])
app.include_router(
    analytics.router,
    prefix=f"{settings.api_v1_str}/analytics",
    tags=["Analytics"],
)


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "ok", "version": __version__}
