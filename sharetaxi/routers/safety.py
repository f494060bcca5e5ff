"""
Safety Router

SOS alerts and emergency contacts.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from sharetaxi.dependencies import get_current_user
from sharetaxi.models.safety import (
    EmergencyContact,
    EmergencyContactCreate,
    SOSAlert,
    SOSCreate,
)
from sharetaxi.models.user import User
from sharetaxi.services.safety_service import SafetyService


router = APIRouter()
safety_service = SafetyService()


def _to_http_error(e: ValueError) -> HTTPException:
    message = str(e)
    if message.endswith("not found"):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)
    if message == "Not authorized":
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


@router.post("/sos", response_model=SOSAlert, status_code=status.HTTP_201_CREATED)
async def trigger_sos(
    request: SOSCreate,
    current_user: User = Depends(get_current_user)
):
    """Raise an SOS alert; ride participants and emergency contacts are told."""
    try:
        return await safety_service.trigger_sos(current_user.user_id, request)
    except ValueError as e:
        raise _to_http_error(e)


@router.post("/sos/{sos_id}/resolve", response_model=SOSAlert)
async def resolve_sos(sos_id: str, current_user: User = Depends(get_current_user)):
    try:
        return await safety_service.resolve_sos(current_user.user_id, sos_id)
    except ValueError as e:
        raise _to_http_error(e)


@router.get("/contacts", response_model=List[EmergencyContact])
async def get_emergency_contacts(current_user: User = Depends(get_current_user)):
    return await safety_service.get_emergency_contacts(current_user.user_id)


@router.post("/contacts", response_model=EmergencyContact, status_code=status.HTTP_201_CREATED)
async def add_emergency_contact(
    request: EmergencyContactCreate,
    current_user: User = Depends(get_current_user)
):
    return await safety_service.add_emergency_contact(current_user.user_id, request)


@router.delete("/contacts/{contact_id}")
async def remove_emergency_contact(
    contact_id: str,
    current_user: User = Depends(get_current_user)
):
    try:
        await safety_service.remove_emergency_contact(current_user.user_id, contact_id)
    except ValueError as e:
        raise _to_http_error(e)

    return {"message": "Emergency contact removed"}
