"""Tenant scheduling router - bookings and availability configuration"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ...auth import get_current_tenant
from ...database import get_db
from ...models import Tenant
from ...services.notification_service import (
    EVENT_BOOKING_STATUS_CHANGED,
    build_booking_payload,
    send_booking_notification,
)
from .availability_service import AvailabilityService
from .booking_service import BookingService
from .router_public import slot_to_response
from .schedule_service import ScheduleService
from .schemas import (
    AvailabilityModeUpdate,
    AvailabilityResponse,
    BookingResponse,
    BookingStatusUpdate,
    ProfessionalAvailabilityResponse,
    ServiceAvailabilityResponse,
    WindowCreate,
    WindowResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenant", tags=["Tenant Scheduling"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    """Dependency injection for ScheduleService"""
    return ScheduleService(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


# ============================================================================
# BOOKINGS
# ============================================================================


@router.get("/bookings", response_model=list[BookingResponse])
def list_bookings(
    day: Optional[date] = Query(None, alias="date"),
    booking_status: Optional[str] = Query(None, alias="status"),
    tenant: Tenant = Depends(get_current_tenant),
    service: BookingService = Depends(get_booking_service),
):
    """List bookings, optionally for one UTC date and/or status"""
    return service.list_bookings(tenant.id, day, booking_status)


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: int,
    tenant: Tenant = Depends(get_current_tenant),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_booking(tenant.id, booking_id)


@router.patch("/bookings/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_current_tenant),
    service: BookingService = Depends(get_booking_service),
):
    """Move a booking to a new status (CONFIRMED, COMPLETED, CANCELLED, NO_SHOW)"""
    booking = service.update_status(tenant.id, booking_id, data.status)
    background_tasks.add_task(
        send_booking_notification,
        build_booking_payload(EVENT_BOOKING_STATUS_CHANGED, booking),
    )
    return booking


@router.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking(
    booking_id: int,
    tenant: Tenant = Depends(get_current_tenant),
    service: BookingService = Depends(get_booking_service),
):
    service.delete_booking(tenant.id, booking_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# SERVICE AVAILABILITY
# ============================================================================


@router.get("/services/{service_id}/availability", response_model=ServiceAvailabilityResponse)
def get_service_windows(
    service_id: int,
    tenant: Tenant = Depends(get_current_tenant),
    service: ScheduleService = Depends(get_schedule_service),
):
    service_row = service.get_service(tenant.id, service_id)
    windows = service.list_service_windows(tenant.id, service_id)
    return ServiceAvailabilityResponse(
        service_id=service_row.id,
        unrestricted=service_row.unrestricted,
        windows=[WindowResponse.model_validate(w) for w in windows],
    )


@router.post(
    "/services/{service_id}/availability",
    response_model=WindowResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_service_window(
    service_id: int,
    data: WindowCreate,
    tenant: Tenant = Depends(get_current_tenant),
    service: ScheduleService = Depends(get_schedule_service),
):
    """Add a weekly window. The first window ends 24/7 availability for the service."""
    return service.add_service_window(
        tenant.id, service_id, data.day_of_week, data.start_time, data.end_time, data.is_active
    )


@router.delete(
    "/services/{service_id}/availability/{window_id}", status_code=status.HTTP_204_NO_CONTENT
)
def delete_service_window(
    service_id: int,
    window_id: int,
    tenant: Tenant = Depends(get_current_tenant),
    service: ScheduleService = Depends(get_schedule_service),
):
    service.delete_service_window(tenant.id, service_id, window_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/services/{service_id}/availability-mode", response_model=ServiceAvailabilityResponse)
def set_service_availability_mode(
    service_id: int,
    data: AvailabilityModeUpdate,
    tenant: Tenant = Depends(get_current_tenant),
    service: ScheduleService = Depends(get_schedule_service),
):
    updated = service.set_unrestricted(tenant.id, service_id, data.unrestricted)
    return ServiceAvailabilityResponse(
        service_id=updated.id,
        unrestricted=updated.unrestricted,
        windows=[WindowResponse.model_validate(w) for w in updated.windows],
    )


@router.get("/services/{service_id}/availability-slots", response_model=AvailabilityResponse)
def get_service_slots(
    service_id: int,
    day: date = Query(..., alias="date"),
    professional_id: Optional[int] = Query(None),
    tenant: Tenant = Depends(get_current_tenant),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Same availability the public widget sees, for the tenant dashboard"""
    slots = service.get_availability(tenant.id, service_id, day, professional_id)
    return AvailabilityResponse(
        service_id=service_id,
        date=day,
        professional_id=professional_id,
        slots=[slot_to_response(slot) for slot in slots],
    )


# ============================================================================
# PROFESSIONAL AVAILABILITY
# ============================================================================


@router.get(
    "/professionals/{professional_id}/availability",
    response_model=ProfessionalAvailabilityResponse,
)
def get_professional_windows(
    professional_id: int,
    tenant: Tenant = Depends(get_current_tenant),
    service: ScheduleService = Depends(get_schedule_service),
):
    windows = service.list_professional_windows(tenant.id, professional_id)
    return ProfessionalAvailabilityResponse(
        professional_id=professional_id,
        windows=[WindowResponse.model_validate(w) for w in windows],
    )


@router.post(
    "/professionals/{professional_id}/availability",
    response_model=WindowResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_professional_window(
    professional_id: int,
    data: WindowCreate,
    tenant: Tenant = Depends(get_current_tenant),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.add_professional_window(
        tenant.id, professional_id, data.day_of_week, data.start_time, data.end_time, data.is_active
    )


@router.delete(
    "/professionals/{professional_id}/availability/{window_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_professional_window(
    professional_id: int,
    window_id: int,
    tenant: Tenant = Depends(get_current_tenant),
    service: ScheduleService = Depends(get_schedule_service),
):
    service.delete_professional_window(tenant.id, professional_id, window_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
