"""Schedule service - configuration of service and professional availability windows"""

import logging

from sqlalchemy.orm import Session

from ...errors import NotFoundError, ValidationError, WindowOverlapError
from ...models import Professional, ProfessionalAvailability, Service, ServiceAvailability
from ...shared.validators import validate_day_of_week
from .repository import SchedulingRepository
from .weekly_schedule import MINUTES_PER_DAY, TimeRange, format_hhmm, parse_hhmm

logger = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def validate_window(day_of_week: int, start_time: str, end_time: str) -> TimeRange:
    """Check a window at the data-entry boundary and return its minute range"""
    try:
        validate_day_of_week(day_of_week)
        time_range = TimeRange(parse_hhmm(start_time), parse_hhmm(end_time))
    except ValueError as e:
        raise ValidationError(str(e)) from e

    if time_range.start >= MINUTES_PER_DAY:
        raise ValidationError("start_time must be before 24:00")
    if time_range.is_empty:
        raise ValidationError("start_time must be before end_time")
    return time_range


def _check_overlap(existing, day_of_week: int, time_range: TimeRange) -> None:
    for window in existing:
        if not window.is_active or window.day_of_week != day_of_week:
            continue
        other = TimeRange(parse_hhmm(window.start_time), parse_hhmm(window.end_time))
        if time_range.overlaps(other):
            raise WindowOverlapError(
                f"Window {format_hhmm(time_range.start)}-{format_hhmm(time_range.end)} overlaps "
                f"existing window {window.start_time}-{window.end_time} on {DAY_NAMES[day_of_week]}",
                extra={"conflicting_window_id": window.id},
            )


class ScheduleService:
    """Service layer for availability window configuration"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def get_service(self, tenant_id: int, service_id: int) -> Service:
        service = self.repo.get_service(self.db, tenant_id, service_id, active_only=False)
        if not service:
            raise NotFoundError("Service not found")
        return service

    def list_service_windows(self, tenant_id: int, service_id: int) -> list[ServiceAvailability]:
        service = self.get_service(tenant_id, service_id)
        return self.repo.get_service_windows(self.db, service.id)

    def add_service_window(
        self,
        tenant_id: int,
        service_id: int,
        day_of_week: int,
        start_time: str,
        end_time: str,
        is_active: bool = True,
    ) -> ServiceAvailability:
        """
        Add a window to a service.

        The first window turns a 24/7 service into a restricted one. Overlapping
        active windows on the same day are rejected.
        """
        service = self.get_service(tenant_id, service_id)
        time_range = validate_window(day_of_week, start_time, end_time)
        if is_active:
            _check_overlap(self.repo.get_service_windows(self.db, service.id), day_of_week, time_range)

        window = ServiceAvailability(
            service_id=service.id,
            day_of_week=day_of_week,
            start_time=format_hhmm(time_range.start),
            end_time=format_hhmm(time_range.end),
            is_active=is_active,
        )
        if service.unrestricted:
            service.unrestricted = False
            logger.info(f"🔒 Service {service.id} is no longer available 24/7")
        self.repo.add_window(self.db, window)
        logger.info(
            f"✅ Service {service.id} window added: {DAY_NAMES[day_of_week]} "
            f"{window.start_time}-{window.end_time}"
        )
        return window

    def delete_service_window(self, tenant_id: int, service_id: int, window_id: int) -> None:
        service = self.get_service(tenant_id, service_id)
        window = next((w for w in self.repo.get_service_windows(self.db, service.id) if w.id == window_id), None)
        if not window:
            raise NotFoundError("Availability window not found")
        self.repo.delete_window(self.db, window)
        logger.info(f"🗑️ Service {service.id} window {window_id} deleted")

    def set_unrestricted(self, tenant_id: int, service_id: int, unrestricted: bool) -> Service:
        """
        Switch a service between 24/7 and window-restricted.

        Windows are kept either way; they only apply while restricted.
        """
        service = self.get_service(tenant_id, service_id)
        service.unrestricted = unrestricted
        self.db.commit()
        self.db.refresh(service)
        logger.info(f"🔧 Service {service.id} unrestricted={unrestricted}")
        return service

    # ------------------------------------------------------------------
    # Professionals
    # ------------------------------------------------------------------

    def get_professional(self, tenant_id: int, professional_id: int) -> Professional:
        professional = self.repo.get_professional(self.db, tenant_id, professional_id)
        if not professional:
            raise NotFoundError("Professional not found")
        return professional

    def list_professional_windows(
        self, tenant_id: int, professional_id: int
    ) -> list[ProfessionalAvailability]:
        professional = self.get_professional(tenant_id, professional_id)
        return self.repo.get_professional_windows(self.db, professional.id)

    def add_professional_window(
        self,
        tenant_id: int,
        professional_id: int,
        day_of_week: int,
        start_time: str,
        end_time: str,
        is_active: bool = True,
    ) -> ProfessionalAvailability:
        professional = self.get_professional(tenant_id, professional_id)
        time_range = validate_window(day_of_week, start_time, end_time)
        if is_active:
            _check_overlap(
                self.repo.get_professional_windows(self.db, professional.id), day_of_week, time_range
            )

        window = ProfessionalAvailability(
            professional_id=professional.id,
            day_of_week=day_of_week,
            start_time=format_hhmm(time_range.start),
            end_time=format_hhmm(time_range.end),
            is_active=is_active,
        )
        self.repo.add_window(self.db, window)
        logger.info(
            f"✅ Professional {professional.id} window added: {DAY_NAMES[day_of_week]} "
            f"{window.start_time}-{window.end_time}"
        )
        return window

    def delete_professional_window(
        self, tenant_id: int, professional_id: int, window_id: int
    ) -> None:
        professional = self.get_professional(tenant_id, professional_id)
        window = next(
            (w for w in self.repo.get_professional_windows(self.db, professional.id) if w.id == window_id),
            None,
        )
        if not window:
            raise NotFoundError("Availability window not found")
        self.repo.delete_window(self.db, window)
        logger.info(f"🗑️ Professional {professional.id} window {window_id} deleted")
