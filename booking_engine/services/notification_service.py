"""
Booking Notification Service
Dispatches a fire-and-forget notification after a booking is committed.
Delivery itself (email, SMS, push) belongs to whatever listens on the webhook.
"""

import logging
from typing import Optional

import httpx

from ..config import NOTIFICATION_TIMEOUT_SECONDS, NOTIFICATION_WEBHOOK_URL
from ..shared.timeutils import as_utc

logger = logging.getLogger(__name__)

EVENT_BOOKING_CREATED = "booking.created"
EVENT_BOOKING_STATUS_CHANGED = "booking.status_changed"


def build_booking_payload(event: str, booking, client_email: Optional[str] = None) -> dict:
    """Serializable snapshot of a booking, taken before the session closes"""
    return {
        "event": event,
        "booking_id": booking.id,
        "tenant_id": booking.tenant_id,
        "service_id": booking.service_id,
        "professional_id": booking.professional_id,
        "client_id": booking.client_id,
        "client_email": client_email,
        "start": as_utc(booking.start_datetime).isoformat(),
        "end": as_utc(booking.end_datetime).isoformat(),
        "status": booking.status,
    }


async def send_booking_notification(
    payload: dict, webhook_url: Optional[str] = NOTIFICATION_WEBHOOK_URL
) -> bool:
    """
    POST the payload to the notification webhook.

    Never raises: the booking is already committed, so a delivery failure
    is logged and reported through the return value only.
    """
    event = payload.get("event")
    booking_id = payload.get("booking_id")

    if not webhook_url:
        logger.info(f"🔔 {event} for booking {booking_id} (no webhook configured)")
        return False

    try:
        async with httpx.AsyncClient(timeout=NOTIFICATION_TIMEOUT_SECONDS) as client:
            response = await client.post(webhook_url, json=payload)
            response.raise_for_status()
        logger.info(f"✅ {event} notification sent for booking {booking_id}")
        return True
    except httpx.HTTPStatusError as e:
        logger.error(
            f"❌ Notification webhook returned {e.response.status_code} for booking {booking_id}"
        )
    except httpx.HTTPError as e:
        logger.error(f"❌ Failed to send {event} notification for booking {booking_id}: {e}")
    return False
