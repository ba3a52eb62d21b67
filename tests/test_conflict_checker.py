"""Tests for the half-open overlap rule."""

from datetime import datetime

from booking_engine.domain.scheduling.conflict_checker import (
    BookingInterval,
    find_conflict,
    is_slot_free,
    overlaps,
)


def t(hour, minute=0):
    return datetime(2030, 1, 7, hour, minute)


def booking(start, end, status="CONFIRMED", service_id=1, professional_id=10, booking_id=1):
    return BookingInterval(
        id=booking_id,
        service_id=service_id,
        professional_id=professional_id,
        start=start,
        end=end,
        status=status,
    )


class TestOverlaps:
    def test_overlapping(self):
        assert overlaps(t(9), t(10), t(9, 30), t(10, 30))

    def test_contained(self):
        assert overlaps(t(9), t(12), t(10), t(11))

    def test_touching_is_not_overlap(self):
        assert not overlaps(t(9), t(10), t(10), t(11))
        assert not overlaps(t(10), t(11), t(9), t(10))


class TestIsSlotFree:
    def test_adjacent_booking_leaves_slot_free(self):
        bookings = [booking(t(9), t(10))]
        assert is_slot_free(bookings, t(10), t(10, 30), service_id=1, professional_id=10)

    def test_overlapping_booking_blocks(self):
        bookings = [booking(t(9), t(10))]
        assert not is_slot_free(bookings, t(9, 30), t(10), service_id=1, professional_id=10)

    def test_cancelled_and_no_show_never_block(self):
        bookings = [booking(t(9), t(10), status="CANCELLED"), booking(t(9), t(10), status="NO_SHOW")]
        assert is_slot_free(bookings, t(9), t(9, 30), service_id=1, professional_id=10)

    def test_pending_blocks(self):
        bookings = [booking(t(9), t(10), status="PENDING")]
        assert not is_slot_free(bookings, t(9), t(9, 30), service_id=1, professional_id=10)

    def test_other_professional_does_not_block(self):
        bookings = [booking(t(9), t(10), professional_id=11)]
        assert is_slot_free(bookings, t(9), t(9, 30), service_id=1, professional_id=10)

    def test_professional_busy_on_another_service_blocks(self):
        bookings = [booking(t(9), t(10), service_id=2, professional_id=10)]
        assert not is_slot_free(bookings, t(9), t(9, 30), service_id=1, professional_id=10)

    def test_service_scope_without_professional(self):
        bookings = [booking(t(9), t(10), service_id=1, professional_id=None)]
        assert not is_slot_free(bookings, t(9), t(9, 30), service_id=1)
        assert is_slot_free(bookings, t(9), t(9, 30), service_id=2)

    def test_unassigned_booking_blocks_every_professional_of_the_service(self):
        bookings = [booking(t(9), t(10), service_id=1, professional_id=None)]
        assert not is_slot_free(bookings, t(9), t(9, 30), service_id=1, professional_id=10)
        assert not is_slot_free(bookings, t(9), t(9, 30), service_id=1, professional_id=11)
        assert is_slot_free(bookings, t(9), t(9, 30), service_id=2, professional_id=10)

    def test_excluded_booking_is_ignored(self):
        bookings = [booking(t(9), t(10), booking_id=5)]
        assert is_slot_free(bookings, t(9), t(10), 1, 10, exclude_booking_id=5)


class TestFindConflict:
    def test_returns_first_conflicting_booking(self):
        blocking = booking(t(9, 30), t(10), booking_id=7)
        found = find_conflict([booking(t(8), t(9), booking_id=6), blocking], t(9), t(10), 1, 10)
        assert found == blocking

    def test_none_when_free(self):
        assert find_conflict([], t(9), t(10), 1, 10) is None
