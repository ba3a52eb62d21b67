"""Booking service - commit guard and booking lifecycle"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from ...errors import (
    InvalidStatusTransition,
    NotFoundError,
    ScheduleConflict,
    SlotNotBookable,
    ValidationError,
)
from ...models import OCCUPYING_STATUSES, Booking, BookingStatus, Professional, Service
from ...shared.timeutils import day_bounds, minute_of_day, to_utc_naive, utc_now
from .availability_service import professional_day, service_day_windows
from .intersector import effective_windows, fits_in_windows
from .repository import SchedulingRepository
from .weekly_schedule import MINUTES_PER_DAY

logger = logging.getLogger(__name__)

REASON_OUTSIDE_AVAILABILITY = "outside availability"
REASON_ALREADY_BOOKED = "already booked"
REASON_NO_PROFESSIONAL = "no professional assigned"
REASON_LOCK_FAILURE = "concurrent booking"

# Allowed moves. Anything not listed, including a move to the current
# status, is rejected.
STATUS_TRANSITIONS = {
    BookingStatus.PENDING: {
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
        BookingStatus.NO_SHOW,
    },
    BookingStatus.CONFIRMED: {
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED,
        BookingStatus.NO_SHOW,
    },
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.NO_SHOW: set(),
}

LOCK_FAILURE_MARKERS = (
    "database is locked",
    "deadlock",
    "could not serialize",
    "lock wait timeout",
    "could not obtain lock",
)


def _is_lock_failure(exc: OperationalError) -> bool:
    message = str(getattr(exc, "orig", exc)).lower()
    return any(marker in message for marker in LOCK_FAILURE_MARKERS)


def parse_status(value: str) -> BookingStatus:
    try:
        return BookingStatus(value.upper() if isinstance(value, str) else value)
    except ValueError as e:
        allowed = ", ".join(s.value for s in BookingStatus)
        raise ValidationError(f"Invalid status '{value}'. Must be one of: {allowed}") from e


class BookingService:
    """Service layer for committing and mutating bookings"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_booking(self, tenant_id: int, booking_id: int) -> Booking:
        booking = self.repo.get_booking(self.db, tenant_id, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def list_bookings(
        self, tenant_id: int, day: Optional[date] = None, status: Optional[str] = None
    ) -> list[Booking]:
        range_start = range_end = None
        if day is not None:
            range_start, range_end = day_bounds(day)
        if status:
            status = parse_status(status).value
        return self.repo.list_bookings(self.db, tenant_id, range_start, range_end, status)

    # ------------------------------------------------------------------
    # Commit guard
    # ------------------------------------------------------------------

    def commit_booking(
        self,
        tenant_id: int,
        service_id: int,
        start: datetime,
        client_name: str,
        client_email: str,
        client_phone: Optional[str] = None,
        professional_id: Optional[int] = None,
        end: Optional[datetime] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Booking:
        """
        Re-validate and insert a PENDING booking in one locked transaction.

        Raises ScheduleConflict when another booking holds the interval,
        SlotNotBookable when it lies outside working hours or nobody performs
        the service, and NotFoundError/ValidationError for bad input.
        """
        service = self.repo.get_service(self.db, tenant_id, service_id)
        if not service:
            raise NotFoundError("Service not found")

        start = to_utc_naive(start)
        end = to_utc_naive(end) if end is not None else start + timedelta(minutes=service.duration_minutes)
        if end <= start:
            raise ValidationError("Booking end must be after its start")
        now = now if now is not None else utc_now()
        if start < now:
            raise ValidationError("Cannot book a time in the past")

        candidates = self._candidate_professionals(tenant_id, service, professional_id)
        if not candidates:
            logger.warning(f"⚠️ Booking rejected: service {service.id} has no qualified professional")
            raise SlotNotBookable("No professional performs this service", REASON_NO_PROFESSIONAL)

        day = start.date()
        start_minute = minute_of_day(start, day)
        end_minute = minute_of_day(end, day)
        service_windows = service_day_windows(service, day)
        if end_minute > MINUTES_PER_DAY or not fits_in_windows(service_windows, start_minute, end_minute):
            logger.warning(
                f"⚠️ Booking rejected: {start} - {end} outside availability of service {service.id}"
            )
            raise SlotNotBookable(
                "The requested time is outside the service's availability",
                REASON_OUTSIDE_AVAILABILITY,
            )

        try:
            self.repo.lock_scope(self.db, service.id, [p.id for p in candidates])

            assigned = self._pick_professional(
                service, candidates, service_windows, day, start, end, start_minute, end_minute
            )

            client = self.repo.find_or_create_client(
                self.db, tenant_id, client_name, client_email, client_phone
            )
            booking = Booking(
                tenant_id=tenant_id,
                service_id=service.id,
                professional_id=assigned.id,
                client_id=client.id,
                start_datetime=start,
                end_datetime=end,
                status=BookingStatus.PENDING.value,
                total_price=service.price,
                notes=notes,
            )
            self.repo.add_booking(self.db, booking)
            self.db.commit()
        except (ScheduleConflict, SlotNotBookable):
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Booking insert rejected by database constraint: {e.orig}")
            raise ScheduleConflict(reason=REASON_LOCK_FAILURE) from e
        except OperationalError as e:
            self.db.rollback()
            if _is_lock_failure(e):
                logger.warning(f"⚠️ Booking lost a lock race on service {service_id}: {e.orig}")
                raise ScheduleConflict(reason=REASON_LOCK_FAILURE) from e
            raise

        self.db.refresh(booking)
        logger.info(
            f"✅ Booking {booking.id} created: service={service.id} "
            f"professional={booking.professional_id} {start} - {end}"
        )
        return booking

    def _candidate_professionals(
        self, tenant_id: int, service: Service, professional_id: Optional[int]
    ) -> list[Professional]:
        if professional_id is None:
            return self.repo.get_qualified_professionals(self.db, service)

        professional = self.repo.get_professional(self.db, tenant_id, professional_id)
        if not professional or not professional.is_available:
            raise NotFoundError("Professional not found")
        if not self.repo.is_qualified(self.db, professional, service):
            raise NotFoundError("Professional does not perform this service")
        return [professional]

    def _pick_professional(
        self,
        service: Service,
        candidates: list[Professional],
        service_windows,
        day: date,
        start: datetime,
        end: datetime,
        start_minute: int,
        end_minute: int,
    ) -> Professional:
        """First candidate scheduled for the interval and free under the current lock"""
        scheduled = False
        for professional in candidates:
            windows = effective_windows(service_windows, professional_day(professional, day).windows)
            if not fits_in_windows(windows, start_minute, end_minute):
                continue
            scheduled = True
            conflict = self.repo.find_overlapping(
                self.db, start, end, service.id, professional_id=professional.id
            )
            if conflict is None:
                return professional
            if len(candidates) == 1:
                logger.warning(
                    f"⚠️ Booking rejected: professional {professional.id} already booked "
                    f"({conflict.start_datetime} - {conflict.end_datetime})"
                )
                raise ScheduleConflict(reason=REASON_ALREADY_BOOKED, conflicting_booking_id=conflict.id)

        if not scheduled:
            logger.warning(f"⚠️ Booking rejected: no professional works {start} - {end}")
            raise SlotNotBookable(
                "The requested time is outside the professional's availability",
                REASON_OUTSIDE_AVAILABILITY,
            )
        logger.warning(f"⚠️ Booking rejected: every professional is booked at {start} - {end}")
        raise ScheduleConflict(reason=REASON_ALREADY_BOOKED)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def update_status(self, tenant_id: int, booking_id: int, new_status: str) -> Booking:
        """
        Move a booking along its lifecycle.

        Moving into an occupying status re-checks overlap under the scope
        lock; moving out of one always succeeds.
        """
        booking = self.get_booking(tenant_id, booking_id)
        target = parse_status(new_status)
        current = BookingStatus(booking.status)

        if target not in STATUS_TRANSITIONS[current]:
            logger.warning(
                f"⚠️ Rejected status change for booking {booking.id}: {current.value} -> {target.value}"
            )
            raise InvalidStatusTransition(
                f"Cannot change booking status from {current.value} to {target.value}"
            )

        try:
            if target.value in OCCUPYING_STATUSES:
                professional_ids = [booking.professional_id] if booking.professional_id else []
                self.repo.lock_scope(self.db, booking.service_id, professional_ids)
                conflict = self.repo.find_overlapping(
                    self.db,
                    booking.start_datetime,
                    booking.end_datetime,
                    booking.service_id,
                    professional_id=booking.professional_id,
                    exclude_booking_id=booking.id,
                )
                if conflict is not None:
                    logger.warning(
                        f"⚠️ Booking {booking.id} cannot become {target.value}: "
                        f"overlaps booking {conflict.id}"
                    )
                    raise ScheduleConflict(
                        reason=REASON_ALREADY_BOOKED, conflicting_booking_id=conflict.id
                    )

            booking.status = target.value
            self.db.commit()
        except ScheduleConflict:
            self.db.rollback()
            raise
        except OperationalError as e:
            self.db.rollback()
            if _is_lock_failure(e):
                raise ScheduleConflict(reason=REASON_LOCK_FAILURE) from e
            raise

        self.db.refresh(booking)
        logger.info(f"🔄 Booking {booking.id} status: {current.value} -> {target.value}")
        return booking

    def delete_booking(self, tenant_id: int, booking_id: int) -> None:
        """Remove a booking outright. Distinct from cancelling it."""
        booking = self.get_booking(tenant_id, booking_id)
        self.repo.delete_booking(self.db, booking)
        logger.info(f"🗑️ Booking {booking_id} deleted for tenant {tenant_id}")
