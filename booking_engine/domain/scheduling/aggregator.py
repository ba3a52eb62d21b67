"""
Slot Aggregator

Pure functions from (date, windows, professionals, bookings) to an immutable
list of slots. Nothing here reads the database or keeps state between calls.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from ...shared.timeutils import at_minute
from .conflict_checker import BookingInterval, is_slot_free
from .intersector import effective_windows, fits_in_windows
from .slot_generator import DEFAULT_STEP_MINUTES, generate_slots
from .weekly_schedule import TimeRange, format_hhmm

logger = logging.getLogger(__name__)

REASON_NO_PROFESSIONAL = "no professional assigned"
REASON_FULLY_BOOKED = "no professional available"
REASON_BOOKED = "already booked"
REASON_NOT_WORKING = "professional not working"
REASON_PAST = "in the past"


@dataclass(frozen=True)
class ProfessionalRef:
    id: int
    name: str


@dataclass(frozen=True)
class ProfessionalDay:
    """A qualified, available professional and their windows for one day."""

    ref: ProfessionalRef
    windows: Tuple[TimeRange, ...]


@dataclass(frozen=True)
class Slot:
    date: date
    time: str  # HH:MM, UTC
    start: datetime
    end: datetime
    is_available: bool
    reason: Optional[str] = None
    professionals: Tuple[ProfessionalRef, ...] = field(default_factory=tuple)


def _candidate(day: date, minute: int, duration_minutes: int) -> Tuple[datetime, datetime]:
    start = at_minute(day, minute)
    return start, start + timedelta(minutes=duration_minutes)


def aggregate(
    day: date,
    service_id: int,
    service_windows: Sequence[TimeRange],
    duration_minutes: int,
    professionals: Sequence[ProfessionalDay],
    bookings: Sequence[BookingInterval],
    step_minutes: int = DEFAULT_STEP_MINUTES,
    now: Optional[datetime] = None,
) -> List[Slot]:
    """
    "Any professional" mode.

    Candidates come from the service windows. A professional is attached to a
    slot when the slot lies inside one of their effective windows and they
    have no overlapping booking. A slot is available iff at least one
    professional is attached.
    """
    minutes = generate_slots(service_windows, duration_minutes, step_minutes)
    effective = {
        professional.ref.id: effective_windows(service_windows, professional.windows)
        for professional in professionals
    }

    slots = []
    for minute in minutes:
        start, end = _candidate(day, minute, duration_minutes)
        label = format_hhmm(minute)

        if not professionals:
            slots.append(Slot(day, label, start, end, False, REASON_NO_PROFESSIONAL))
            continue
        if now is not None and start < now:
            slots.append(Slot(day, label, start, end, False, REASON_PAST))
            continue

        free = tuple(
            professional.ref
            for professional in professionals
            if fits_in_windows(effective[professional.ref.id], minute, minute + duration_minutes)
            and is_slot_free(bookings, start, end, service_id, professional.ref.id)
        )
        if free:
            slots.append(Slot(day, label, start, end, True, None, free))
        else:
            slots.append(Slot(day, label, start, end, False, REASON_FULLY_BOOKED))

    return slots


def resolve_for_professional(
    day: date,
    service_id: int,
    service_windows: Sequence[TimeRange],
    duration_minutes: int,
    professional: ProfessionalDay,
    bookings: Sequence[BookingInterval],
    step_minutes: int = DEFAULT_STEP_MINUTES,
    now: Optional[datetime] = None,
) -> List[Slot]:
    """
    Single-professional mode: candidates come from the professional's
    effective windows and a slot is available iff the professional is free.

    When the professional does not work any part of the service's hours that
    day, the service's own candidates are returned, all unavailable.
    """
    windows = effective_windows(service_windows, professional.windows)
    if not windows:
        logger.debug(f"Professional {professional.ref.id} has no effective windows on {day}")
        return [
            Slot(day, format_hhmm(minute), *_candidate(day, minute, duration_minutes), False, REASON_NOT_WORKING)
            for minute in generate_slots(service_windows, duration_minutes, step_minutes)
        ]

    slots = []
    for minute in generate_slots(windows, duration_minutes, step_minutes):
        start, end = _candidate(day, minute, duration_minutes)
        label = format_hhmm(minute)
        if now is not None and start < now:
            slots.append(Slot(day, label, start, end, False, REASON_PAST))
        elif is_slot_free(bookings, start, end, service_id, professional.ref.id):
            slots.append(Slot(day, label, start, end, True, None, (professional.ref,)))
        else:
            slots.append(Slot(day, label, start, end, False, REASON_BOOKED))
    return slots
