"""
Notifications Router

In-app notification center.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from sharetaxi.dependencies import get_current_user
from sharetaxi.models.notification import Notification
from sharetaxi.models.user import User
from sharetaxi.services.notification_service import NotificationService


router = APIRouter()
notification_service = NotificationService()


@router.get("", response_model=List[Notification])
async def get_notifications(
    unread_only: bool = False,
    limit: int = 50,
    current_user: User = Depends(get_current_user)
):
    return await notification_service.get_notifications(
        current_user.user_id, limit=min(limit, 100), unread_only=unread_only
    )


@router.post("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    current_user: User = Depends(get_current_user)
):
    updated = await notification_service.mark_read(current_user.user_id, notification_id)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
    return {"message": "Marked as read"}
