"""Public scheduling router - client-facing availability and booking endpoints"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from ...config import BOOKING_RATE_LIMIT, BOOKING_RATE_WINDOW_SECONDS
from ...database import get_db
from ...errors import NotFoundError
from ...models import Tenant
from ...rate_limiter import create_rate_limiter
from ...services.notification_service import (
    EVENT_BOOKING_CREATED,
    build_booking_payload,
    send_booking_notification,
)
from ...shared.timeutils import as_utc
from .aggregator import Slot
from .availability_service import AvailabilityService
from .booking_service import BookingService
from .repository import SchedulingRepository
from .schemas import (
    AvailabilityResponse,
    BookingCreate,
    BookingResponse,
    ProfessionalRefResponse,
    SlotResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public/tenants/{tenant_id}", tags=["Public Booking"])

booking_rate_limit = create_rate_limiter(
    limit=BOOKING_RATE_LIMIT, window_seconds=BOOKING_RATE_WINDOW_SECONDS, key_prefix="booking"
)


def get_public_tenant(tenant_id: int, db: Session = Depends(get_db)) -> Tenant:
    """Resolve the tenant named in the path; unknown or inactive tenants are 404"""
    tenant = SchedulingRepository.get_tenant(db, tenant_id)
    if not tenant:
        raise NotFoundError("Business not found")
    return tenant


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def slot_to_response(slot: Slot) -> SlotResponse:
    return SlotResponse(
        time=slot.time,
        start=as_utc(slot.start),
        end=as_utc(slot.end),
        is_available=slot.is_available,
        reason=slot.reason,
        professionals=[ProfessionalRefResponse(id=p.id, name=p.name) for p in slot.professionals],
    )


@router.get("/services/{service_id}/availability", response_model=AvailabilityResponse)
def get_service_availability(
    service_id: int,
    day: date = Query(..., alias="date", description="UTC date, YYYY-MM-DD"),
    professional_id: Optional[int] = Query(None),
    tenant: Tenant = Depends(get_public_tenant),
    service: AvailabilityService = Depends(get_availability_service),
):
    """
    Bookable slots for a service on one date.

    Omit professional_id to see every qualified professional per slot.
    """
    slots = service.get_availability(tenant.id, service_id, day, professional_id)
    return AvailabilityResponse(
        service_id=service_id,
        date=day,
        professional_id=professional_id,
        slots=[slot_to_response(slot) for slot in slots],
    )


@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_rate_limit)],
)
def create_booking(
    data: BookingCreate,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_public_tenant),
    service: BookingService = Depends(get_booking_service),
):
    """Commit a booking. 409 with retryable=true means the slot was taken; re-query availability."""
    logger.info(f"📥 Booking request for tenant {tenant.id}, service {data.service_id} at {data.start}")
    booking = service.commit_booking(
        tenant_id=tenant.id,
        service_id=data.service_id,
        start=data.start,
        end=data.end,
        professional_id=data.professional_id,
        client_name=data.client.name,
        client_email=data.client.email,
        client_phone=data.client.phone,
        notes=data.notes,
    )
    background_tasks.add_task(
        send_booking_notification,
        build_booking_payload(EVENT_BOOKING_CREATED, booking, data.client.email),
    )
    return booking
