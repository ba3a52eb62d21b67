"""
Conflict Checker

Half-open overlap: a booking [s, e) collides with a candidate [cs, ce) iff
s < ce and e > cs. Touching endpoints do not collide. Only PENDING and
CONFIRMED bookings occupy time.

This module holds the in-memory form used by availability queries. The commit
guard runs the same predicate in SQL (repository.find_overlapping) inside its
locked transaction.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from ...models import OCCUPYING_STATUSES


@dataclass(frozen=True)
class BookingInterval:
    """Snapshot of the fields of a booking that matter for overlap."""

    id: Optional[int]
    service_id: int
    professional_id: Optional[int]
    start: datetime
    end: datetime
    status: str

    @classmethod
    def from_booking(cls, booking) -> "BookingInterval":
        return cls(
            id=booking.id,
            service_id=booking.service_id,
            professional_id=booking.professional_id,
            start=booking.start_datetime,
            end=booking.end_datetime,
            status=booking.status,
        )

    @property
    def occupies(self) -> bool:
        return self.status in OCCUPYING_STATUSES


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and end_a > start_b


def in_scope(booking: BookingInterval, service_id: int, professional_id: Optional[int]) -> bool:
    """
    A professional's calendar spans every service they perform, plus any
    booking of this service that has no professional assigned. Without a
    professional the scope is the service itself.
    """
    if professional_id is not None:
        if booking.professional_id is None:
            return booking.service_id == service_id
        return booking.professional_id == professional_id
    return booking.service_id == service_id


def find_conflict(
    bookings: Iterable[BookingInterval],
    candidate_start: datetime,
    candidate_end: datetime,
    service_id: int,
    professional_id: Optional[int] = None,
    exclude_booking_id: Optional[int] = None,
) -> Optional[BookingInterval]:
    """First occupying booking in scope that overlaps the candidate, if any."""
    for booking in bookings:
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        if not booking.occupies:
            continue
        if not in_scope(booking, service_id, professional_id):
            continue
        if overlaps(booking.start, booking.end, candidate_start, candidate_end):
            return booking
    return None


def is_slot_free(
    bookings: Iterable[BookingInterval],
    candidate_start: datetime,
    candidate_end: datetime,
    service_id: int,
    professional_id: Optional[int] = None,
    exclude_booking_id: Optional[int] = None,
) -> bool:
    return (
        find_conflict(
            bookings,
            candidate_start,
            candidate_end,
            service_id,
            professional_id,
            exclude_booking_id,
        )
        is None
    )
