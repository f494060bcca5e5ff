"""
Matches Router

Accepting or declining a suggested match.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from sharetaxi.dependencies import get_current_user
from sharetaxi.models.match import MatchResponseResult
from sharetaxi.models.user import User
from sharetaxi.routers.rides import matching_service


router = APIRouter()

_ERROR_STATUS = {
    "Match not found": status.HTTP_404_NOT_FOUND,
    "Not allowed to respond to this match": status.HTTP_404_NOT_FOUND,
    "Match already responded": status.HTTP_409_CONFLICT,
    "Match expired": status.HTTP_410_GONE,
}


class MatchResponseRequest(BaseModel):
    accept: bool


@router.post("/{match_id}/respond", response_model=MatchResponseResult)
async def respond_to_match(
    match_id: str,
    request: MatchResponseRequest,
    current_user: User = Depends(get_current_user)
):
    """
    Accept or decline a match for one of the caller's rides.

    Matching is one-sided: only the owner of the ride that triggered
    matching answers a match. The matched ride's owner is only informed,
    and gets a new rider when the match is accepted and a seat is free.
    """
    result = await matching_service.respond_to_match(
        match_id, request.accept, responder_user_id=current_user.user_id
    )

    if not result.success:
        raise HTTPException(
            status_code=_ERROR_STATUS.get(result.error, status.HTTP_400_BAD_REQUEST),
            detail=result.error
        )

    return result
