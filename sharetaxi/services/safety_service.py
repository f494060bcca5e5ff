"""
Safety Service

SOS alerts raised during a ride and the user's emergency contacts.
"""

import asyncio
import logging
import uuid
from typing import List

from sharetaxi.database import get_db
from sharetaxi.models.notification import NotificationType
from sharetaxi.models.ride import ParticipantStatus
from sharetaxi.models.safety import (
    EmergencyContact,
    EmergencyContactCreate,
    SOSAlert,
    SOSCreate,
    SOSStatus,
)
from sharetaxi.services.notification_service import NotificationService
from sharetaxi.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)


class SafetyService:
    """Service for SOS alerts and emergency contacts."""

    def __init__(self, notification_service=None):
        self.notification_service = notification_service or NotificationService()

    # =========================================================================
    # SOS
    # =========================================================================

    async def trigger_sos(self, user_id: str, data: SOSCreate) -> SOSAlert:
        """
        Raise an SOS alert on a ride.

        Every other active participant of the ride gets a push notification.
        Emergency contacts are told by SMS, which is only logged until an
        SMS provider is configured.
        """
        db = get_db()

        ride = await db.rides.find_one({"ride_id": data.ride_id})
        if not ride:
            raise ValueError("Ride not found")

        user = await db.users.find_one({"user_id": user_id})
        display_name = user.get("display_name", "A rider") if user else "A rider"

        alert = SOSAlert(
            sos_id=str(uuid.uuid4()),
            user_id=user_id,
            **data.model_dump(),
        )

        recipients: List[str] = []
        async for doc in db.ride_participants.find({
            "ride_id": data.ride_id,
            "status": {"$ne": ParticipantStatus.CANCELLED.value},
        }):
            if doc["user_id"] != user_id:
                recipients.append(doc["user_id"])

        sends = [
            self.notification_service.send_push_notification(
                user_id=recipient,
                title="🚨 SOS ALERT",
                body=f"{display_name} has triggered an SOS alert!",
                data={
                    "sos_id": alert.sos_id,
                    "ride_id": data.ride_id,
                    "latitude": data.latitude,
                    "longitude": data.longitude,
                },
                notification_type=NotificationType.SOS_ALERT,
            )
            for recipient in recipients
        ]
        results = await asyncio.gather(*sends, return_exceptions=True)

        for recipient, result in zip(recipients, results):
            if isinstance(result, BaseException) or not result.success:
                logger.warning(f"SOS {alert.sos_id} notification to {recipient} failed")
            else:
                alert.notified_users += 1

        contacts = await self.get_emergency_contacts(user_id)
        for contact in contacts:
            logger.warning(
                f"[SMS] SOS {alert.sos_id} for {contact.name} ({contact.phone_number}): "
                f"{display_name} needs help at {data.latitude},{data.longitude}"
            )
        alert.notified_contacts = len(contacts)

        await db.sos_alerts.insert_one(alert.model_dump())

        logger.warning(
            f"SOS {alert.sos_id} raised by {user_id} on ride {data.ride_id}: "
            f"{alert.notified_users} riders, {alert.notified_contacts} contacts notified"
        )
        return alert

    async def resolve_sos(self, user_id: str, sos_id: str) -> SOSAlert:
        """Close an SOS alert. Only the user who raised it may resolve it."""
        db = get_db()

        doc = await db.sos_alerts.find_one({"sos_id": sos_id})
        if not doc:
            raise ValueError("SOS alert not found")

        alert = SOSAlert(**doc)
        if alert.user_id != user_id:
            raise ValueError("Not authorized")
        if alert.status == SOSStatus.RESOLVED:
            raise ValueError("SOS alert already resolved")

        resolved_at = utc_now()
        await db.sos_alerts.update_one(
            {"sos_id": sos_id},
            {"$set": {"status": SOSStatus.RESOLVED.value, "resolved_at": resolved_at}}
        )

        alert.status = SOSStatus.RESOLVED.value
        alert.resolved_at = resolved_at

        logger.info(f"SOS {sos_id} resolved by {user_id}")
        return alert

    # =========================================================================
    # Emergency contacts
    # =========================================================================

    async def add_emergency_contact(
        self, user_id: str, data: EmergencyContactCreate
    ) -> EmergencyContact:
        db = get_db()

        contact = EmergencyContact(
            contact_id=str(uuid.uuid4()),
            user_id=user_id,
            **data.model_dump(),
        )
        await db.emergency_contacts.insert_one(contact.model_dump())

        return contact

    async def remove_emergency_contact(self, user_id: str, contact_id: str) -> None:
        db = get_db()

        result = await db.emergency_contacts.delete_one(
            {"contact_id": contact_id, "user_id": user_id}
        )
        if result.deleted_count == 0:
            raise ValueError("Emergency contact not found")

    async def get_emergency_contacts(self, user_id: str) -> List[EmergencyContact]:
        """A user's emergency contacts, oldest first."""
        db = get_db()

        contacts = []
        async for doc in db.emergency_contacts.find({"user_id": user_id}).sort("created_at", 1):
            contacts.append(EmergencyContact(**doc))

        return contacts
