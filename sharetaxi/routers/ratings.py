"""
Ratings Router

Post-ride ratings between participants.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from sharetaxi.dependencies import get_current_user
from sharetaxi.models.rating import Rating, RatingCreate, RatingResponse
from sharetaxi.models.user import User
from sharetaxi.services.rating_service import RatingService


router = APIRouter()
rating_service = RatingService()


@router.post("", response_model=RatingResponse, status_code=status.HTTP_201_CREATED)
async def submit_rating(
    request: RatingCreate,
    current_user: User = Depends(get_current_user)
):
    """Rate another participant of a ride you took part in."""
    try:
        rating = await rating_service.submit_rating(current_user.user_id, request)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return RatingResponse(
        rating_id=rating.rating_id,
        rated_user_id=rating.rated_user_id,
        score=rating.score,
        created_at=rating.created_at
    )


@router.get("/users/{user_id}", response_model=List[Rating])
async def get_user_ratings(
    user_id: str,
    limit: int = 20,
    current_user: User = Depends(get_current_user)
):
    """Public ratings a user received."""
    return await rating_service.get_user_ratings(user_id, limit=min(limit, 50))
