"""
Notification Service - Push notifications and the in-app notification
center.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sharetaxi.database import get_db
from sharetaxi.models.notification import Notification, NotificationType, PushResult

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Notification service for push and in-app notifications.

    Every send is stored in MongoDB for the notification center. Push
    delivery to devices is not wired to a provider yet and is only logged.
    """

    async def send_push_notification(
        self,
        user_id: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
        notification_type: NotificationType = NotificationType.SYSTEM,
    ) -> PushResult:
        """
        Send a notification to a user.

        Never raises; failures are reported in the returned PushResult so
        callers can fire and forget.
        """
        try:
            db = get_db()

            notification = Notification(
                notification_id=str(uuid.uuid4()),
                user_id=user_id,
                type=notification_type,
                title=title,
                body=body,
                data=data,
                read=False,
            )

            await db.notifications.insert_one(notification.model_dump())
            await self._deliver_push(user_id, title, body, data)

            return PushResult(
                success=True, notification_id=notification.notification_id
            )

        except Exception as e:
            logger.warning(f"Failed to send notification to {user_id}: {e}")
            return PushResult(success=False, error=str(e))

    async def _deliver_push(
        self,
        user_id: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Device push. Logged only until a push provider is configured."""
        logger.info(f"[PUSH] {user_id}: {title} - {body} {data or {}}")
        return True

    async def get_notifications(
        self, user_id: str, limit: int = 50, unread_only: bool = False
    ) -> List[Notification]:
        """Get user's notifications, newest first."""
        db = get_db()

        query = {"user_id": user_id}
        if unread_only:
            query["read"] = False

        cursor = db.notifications.find(query).sort("created_at", -1).limit(limit)

        notifications = []
        async for doc in cursor:
            notifications.append(Notification(**doc))

        return notifications

    async def mark_read(self, user_id: str, notification_id: str) -> bool:
        """Mark a notification as read."""
        db = get_db()

        result = await db.notifications.update_one(
            {"notification_id": notification_id, "user_id": user_id},
            {"$set": {"read": True}},
        )

        return result.modified_count > 0
