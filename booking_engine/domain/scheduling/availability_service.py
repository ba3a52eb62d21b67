"""Availability service - read-only availability resolution for one date"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...config import SLOT_STEP_MINUTES
from ...errors import NotFoundError, ValidationError
from ...models import Professional, Service
from ...shared.timeutils import day_bounds, day_of_week, utc_now
from .aggregator import ProfessionalDay, ProfessionalRef, Slot, aggregate, resolve_for_professional
from .conflict_checker import BookingInterval
from .repository import SchedulingRepository
from .weekly_schedule import TimeRange, WeeklySchedule, service_windows_for

logger = logging.getLogger(__name__)


def service_day_windows(service: Service, day: date) -> list[TimeRange]:
    """Service windows for the UTC day, honouring the unrestricted flag"""
    schedule = WeeklySchedule.from_rows(service.windows)
    return service_windows_for(bool(service.unrestricted), schedule, day_of_week(day))


def professional_day(professional: Professional, day: date) -> ProfessionalDay:
    schedule = WeeklySchedule.from_rows(professional.windows)
    return ProfessionalDay(
        ref=ProfessionalRef(id=professional.id, name=professional.name),
        windows=tuple(schedule.windows_for(day_of_week(day))),
    )


class AvailabilityService:
    """Composes schedule, intersection and conflict data into slots. Never writes."""

    def __init__(self, db: Session, step_minutes: int = SLOT_STEP_MINUTES):
        self.db = db
        self.repo = SchedulingRepository()
        self.step_minutes = step_minutes

    def get_availability(
        self,
        tenant_id: int,
        service_id: int,
        day: date,
        professional_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[Slot]:
        """
        Slots for one service on one UTC date.

        With professional_id, only that professional is considered. Without
        it, every qualified and available professional is (any-professional
        mode). An empty or fully unavailable result is a normal outcome.
        """
        if day is None:
            raise ValidationError("date is required")

        service = self.repo.get_service(self.db, tenant_id, service_id)
        if not service:
            raise NotFoundError("Service not found")

        now = now if now is not None else utc_now()
        service_windows = service_day_windows(service, day)
        range_start, range_end = day_bounds(day)

        if professional_id is not None:
            professional = self._get_bookable_professional(tenant_id, professional_id, service)
            bookings = self._bookings(tenant_id, service.id, range_start, range_end, [professional.id])
            slots = resolve_for_professional(
                day,
                service.id,
                service_windows,
                service.duration_minutes,
                professional_day(professional, day),
                bookings,
                self.step_minutes,
                now,
            )
        else:
            professionals = self.repo.get_qualified_professionals(self.db, service)
            if not professionals:
                logger.info(f"ℹ️ Service {service.id} has no qualified professional")
            bookings = self._bookings(
                tenant_id, service.id, range_start, range_end, [p.id for p in professionals]
            )
            slots = aggregate(
                day,
                service.id,
                service_windows,
                service.duration_minutes,
                [professional_day(p, day) for p in professionals],
                bookings,
                self.step_minutes,
                now,
            )

        available = sum(1 for slot in slots if slot.is_available)
        logger.debug(
            f"📅 Service {service.id} on {day}: {available}/{len(slots)} slots available "
            f"(professional={professional_id})"
        )
        return slots

    def _get_bookable_professional(
        self, tenant_id: int, professional_id: int, service: Service
    ) -> Professional:
        professional = self.repo.get_professional(self.db, tenant_id, professional_id)
        if not professional or not professional.is_available:
            raise NotFoundError("Professional not found")
        if not self.repo.is_qualified(self.db, professional, service):
            raise NotFoundError("Professional does not perform this service")
        return professional

    def _bookings(self, tenant_id, service_id, range_start, range_end, professional_ids):
        rows = self.repo.get_occupying_bookings(
            self.db, tenant_id, range_start, range_end, service_id, professional_ids
        )
        return [BookingInterval.from_booking(row) for row in rows]
