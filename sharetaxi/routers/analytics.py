"""
Analytics Router

Personal ride analytics, ride history and leaderboards.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from sharetaxi.dependencies import get_current_user
from sharetaxi.models.analytics import (
    LeaderboardEntry,
    LeaderboardType,
    RideHistoryEntry,
    UserAnalytics,
)
from sharetaxi.models.user import User
from sharetaxi.services.analytics_service import AnalyticsService


router = APIRouter()
analytics_service = AnalyticsService()


@router.get("", response_model=UserAnalytics)
async def get_my_analytics(current_user: User = Depends(get_current_user)):
    try:
        return await analytics_service.get_user_analytics(current_user.user_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/leaderboard", response_model=List[LeaderboardEntry])
async def get_leaderboard(
    kind: LeaderboardType = Query(LeaderboardType.RIDES, alias="type"),
    current_user: User = Depends(get_current_user)
):
    """Top 10 users by rides, money saved or CO2 saved."""
    return await analytics_service.get_leaderboard(kind)


@router.get("/history", response_model=List[RideHistoryEntry])
async def get_ride_history(
    limit: int = 20,
    current_user: User = Depends(get_current_user)
):
    return await analytics_service.get_ride_history(
        current_user.user_id, limit=max(1, min(limit, 50))
    )
