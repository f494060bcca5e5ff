"""
Rides Router

Ride creation, listing, search, joining, cancellation, completion and
the pending matches of a ride.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from sharetaxi.dependencies import get_current_user
from sharetaxi.models.match import Match
from sharetaxi.models.ride import (
    GenderPreference,
    Ride,
    RideCreate,
    RideDetails,
    RideStatus,
    RideType,
)
from sharetaxi.models.user import User, normalize_gender
from sharetaxi.services.matching_service import MatchingService
from sharetaxi.services.ride_service import RideService


router = APIRouter()
matching_service = MatchingService()
ride_service = RideService(matching_service=matching_service)


class RideCreatedResponse(BaseModel):
    """Ride creation response."""
    ride_id: str
    matches_found: int
    message: str


class RideCompletedResponse(BaseModel):
    total_co2_saved: float
    driver_co2: float
    passenger_co2: float
    points_earned: int
    money_saved: float = 0.0


def _require_building(user: User) -> str:
    if not user.building_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Join a building before creating or browsing rides"
        )
    return user.building_id


@router.post("", response_model=RideCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_ride(
    request: RideCreate,
    current_user: User = Depends(get_current_user)
):
    """
    Create a new ride.

    Matching runs before the response; its failure does not fail creation.
    """
    building_id = _require_building(current_user)

    if request.gender_preference in (GenderPreference.MALE, GenderPreference.FEMALE):
        if normalize_gender(current_user.gender) != request.gender_preference.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Gender-restricted rides must match your own gender"
            )

    created = await ride_service.create_ride(
        user_id=current_user.user_id,
        building_id=building_id,
        data=request
    )

    return RideCreatedResponse(
        ride_id=created["ride"].ride_id,
        matches_found=created["matches_found"],
        message="Ride created successfully!"
    )


@router.get("", response_model=List[Ride])
async def get_active_rides(current_user: User = Depends(get_current_user)):
    """Joinable rides in the caller's building."""
    building_id = _require_building(current_user)
    return await ride_service.get_active_rides(building_id)


@router.get("/search", response_model=List[Ride])
async def search_rides(
    q: Optional[str] = None,
    departure_after: Optional[datetime] = None,
    departure_before: Optional[datetime] = None,
    ride_type: Optional[RideType] = Query(None, alias="type"),
    current_user: User = Depends(get_current_user)
):
    """Joinable rides across buildings by destination and departure window."""
    return await ride_service.search_rides(
        query=q,
        departure_after=departure_after,
        departure_before=departure_before,
        ride_type=ride_type
    )


@router.get("/mine", response_model=List[Ride])
async def get_my_rides(
    status_filter: Optional[RideStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user)
):
    """Rides the caller owns or joined."""
    return await ride_service.get_user_rides(current_user.user_id, status=status_filter)


@router.get("/{ride_id}", response_model=RideDetails)
async def get_ride_details(ride_id: str, current_user: User = Depends(get_current_user)):
    try:
        return await ride_service.get_ride_details(ride_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/{ride_id}/join")
async def join_ride(ride_id: str, current_user: User = Depends(get_current_user)):
    try:
        await ride_service.join_ride(ride_id, current_user.user_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"message": "Successfully joined ride!"}


@router.post("/{ride_id}/cancel")
async def cancel_ride(ride_id: str, current_user: User = Depends(get_current_user)):
    try:
        await ride_service.cancel_ride(ride_id, current_user.user_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"message": "Ride cancelled"}


@router.post("/{ride_id}/complete", response_model=RideCompletedResponse)
async def complete_ride(ride_id: str, current_user: User = Depends(get_current_user)):
    try:
        stats = await ride_service.complete_ride(ride_id, current_user.user_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return RideCompletedResponse(**stats)


@router.get("/{ride_id}/matches", response_model=List[Match])
async def get_ride_matches(ride_id: str, current_user: User = Depends(get_current_user)):
    """Pending matches of one of the caller's rides, best first."""
    ride: Optional[Ride] = await ride_service.get_ride(ride_id)
    if not ride or ride.user_id != current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ride not found"
        )

    result = await matching_service.get_matches(ride_id)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=result.error
        )

    return result.matches
