"""Tests for the booking commit guard and booking lifecycle."""

import threading
from datetime import timedelta, timezone

import pytest

from booking_engine.domain.scheduling.booking_service import BookingService
from booking_engine.errors import (
    InvalidStatusTransition,
    NotFoundError,
    ScheduleConflict,
    SlotNotBookable,
    ValidationError,
)
from booking_engine.models import Booking, BookingStatus, Client
from conftest import MONDAY, at, future_day, make_booking, make_professional, make_service, make_tenant


@pytest.fixture
def salon(db):
    """One tenant, one 30-minute service open Monday 09-12, two professionals."""
    tenant, _ = make_tenant(db)
    service = make_service(db, tenant, duration_minutes=30, price=55.0, windows=[(MONDAY, "09:00", "12:00")])
    alex = make_professional(db, tenant, name="Alex", services=[service], windows=[(MONDAY, "09:00", "12:00")])
    sam = make_professional(db, tenant, name="Sam", services=[service], windows=[(MONDAY, "09:00", "12:00")])
    return tenant, service, alex, sam


def commit(db, tenant, service, start, professional=None, email="client@example.com", **kwargs):
    return BookingService(db).commit_booking(
        tenant_id=tenant.id,
        service_id=service.id,
        start=start,
        client_name="Jamie Client",
        client_email=email,
        professional_id=professional.id if professional else None,
        **kwargs,
    )


class TestCommitBooking:
    def test_creates_pending_booking(self, db, salon):
        tenant, service, alex, _ = salon
        day = future_day(MONDAY)

        booking = commit(db, tenant, service, at(day, "09:00"), professional=alex)

        assert booking.id is not None
        assert booking.status == BookingStatus.PENDING.value
        assert booking.start_datetime == at(day, "09:00")
        assert booking.end_datetime == at(day, "09:30")
        assert booking.professional_id == alex.id
        assert booking.total_price == 55.0

    def test_overlapping_booking_rejected(self, db, salon):
        tenant, service, alex, _ = salon
        day = future_day(MONDAY)
        make_booking(db, service, at(day, "09:00"), at(day, "09:30"), professional=alex)

        with pytest.raises(ScheduleConflict) as exc_info:
            commit(db, tenant, service, at(day, "09:15"), professional=alex)

        assert exc_info.value.retryable
        assert exc_info.value.reason == "already booked"
        assert db.query(Booking).count() == 1

    def test_adjacent_booking_allowed(self, db, salon):
        tenant, service, alex, _ = salon
        day = future_day(MONDAY)
        make_booking(db, service, at(day, "09:00"), at(day, "09:30"), professional=alex)

        booking = commit(db, tenant, service, at(day, "09:30"), professional=alex)

        assert booking.start_datetime == at(day, "09:30")

    def test_cancelled_booking_does_not_block(self, db, salon):
        tenant, service, alex, _ = salon
        day = future_day(MONDAY)
        make_booking(
            db, service, at(day, "09:00"), at(day, "09:30"), professional=alex, status=BookingStatus.CANCELLED
        )

        booking = commit(db, tenant, service, at(day, "09:00"), professional=alex)

        assert booking.status == BookingStatus.PENDING.value

    def test_booking_without_professional_blocks_named_professional(self, db, salon):
        tenant, service, alex, _ = salon
        day = future_day(MONDAY)
        unassigned = make_booking(db, service, at(day, "09:00"), at(day, "09:30"))

        with pytest.raises(ScheduleConflict) as exc_info:
            commit(db, tenant, service, at(day, "09:00"), professional=alex)

        assert exc_info.value.conflicting_booking_id == unassigned.id
        assert db.query(Booking).count() == 1

    def test_booking_without_professional_blocks_auto_assign(self, db, salon):
        tenant, service, _, _ = salon
        day = future_day(MONDAY)
        make_booking(db, service, at(day, "09:00"), at(day, "09:30"))

        with pytest.raises(ScheduleConflict) as exc_info:
            commit(db, tenant, service, at(day, "09:15"))

        assert exc_info.value.reason == "already booked"
        assert db.query(Booking).count() == 1

    def test_booking_without_professional_on_other_service_does_not_block(self, db, salon):
        tenant, service, alex, _ = salon
        other = make_service(db, tenant, name="Colour", windows=[(MONDAY, "09:00", "12:00")])
        day = future_day(MONDAY)
        make_booking(db, other, at(day, "09:00"), at(day, "09:30"))

        booking = commit(db, tenant, service, at(day, "09:00"), professional=alex)

        assert booking.professional_id == alex.id

    def test_auto_assigns_free_professional(self, db, salon):
        tenant, service, alex, sam = salon
        day = future_day(MONDAY)
        make_booking(db, service, at(day, "10:00"), at(day, "10:30"), professional=alex)

        booking = commit(db, tenant, service, at(day, "10:00"))

        assert booking.professional_id == sam.id

    def test_auto_assign_fails_when_everyone_busy(self, db, salon):
        tenant, service, alex, sam = salon
        day = future_day(MONDAY)
        make_booking(db, service, at(day, "10:00"), at(day, "10:30"), professional=alex)
        make_booking(db, service, at(day, "10:00"), at(day, "10:30"), professional=sam)

        with pytest.raises(ScheduleConflict):
            commit(db, tenant, service, at(day, "10:00"))

    def test_outside_service_window_rejected(self, db, salon):
        tenant, service, alex, _ = salon
        day = future_day(MONDAY)

        with pytest.raises(SlotNotBookable) as exc_info:
            commit(db, tenant, service, at(day, "11:45"), professional=alex)

        assert exc_info.value.reason == "outside availability"
        assert not exc_info.value.retryable

    def test_outside_professional_hours_rejected(self, db, salon):
        tenant, service, _, _ = salon
        early = make_professional(db, tenant, name="Early", services=[service], windows=[(MONDAY, "09:00", "10:00")])
        day = future_day(MONDAY)

        with pytest.raises(SlotNotBookable) as exc_info:
            commit(db, tenant, service, at(day, "10:00"), professional=early)

        assert exc_info.value.reason == "outside availability"

    def test_service_without_professionals_rejected(self, db):
        tenant, _ = make_tenant(db)
        service = make_service(db, tenant)

        with pytest.raises(SlotNotBookable) as exc_info:
            commit(db, tenant, service, at(future_day(MONDAY), "09:00"))

        assert exc_info.value.reason == "no professional assigned"
        assert not exc_info.value.retryable

    def test_explicit_end_must_follow_start(self, db, salon):
        tenant, service, alex, _ = salon
        start = at(future_day(MONDAY), "09:00")

        with pytest.raises(ValidationError):
            commit(db, tenant, service, start, professional=alex, end=start)

    def test_past_booking_rejected(self, db, salon):
        tenant, service, alex, _ = salon
        start = at(future_day(MONDAY), "09:00")

        with pytest.raises(ValidationError):
            commit(db, tenant, service, start, professional=alex, now=start + timedelta(minutes=1))

    def test_aware_datetimes_are_normalized_to_utc(self, db, salon):
        tenant, service, alex, _ = salon
        day = future_day(MONDAY)
        start = at(day, "11:00").replace(tzinfo=timezone(timedelta(hours=2)))  # 09:00 UTC

        booking = commit(db, tenant, service, start, professional=alex)

        assert booking.start_datetime == at(day, "09:00")

    def test_unknown_service(self, db, salon):
        tenant, service, _, _ = salon
        with pytest.raises(NotFoundError):
            BookingService(db).commit_booking(
                tenant_id=tenant.id,
                service_id=service.id + 999,
                start=at(future_day(MONDAY), "09:00"),
                client_name="Jamie",
                client_email="jamie@example.com",
            )

    def test_client_found_or_created_by_email(self, db, salon):
        tenant, service, alex, sam = salon
        day = future_day(MONDAY)

        first = commit(db, tenant, service, at(day, "09:00"), professional=alex, email="repeat@example.com")
        second = commit(db, tenant, service, at(day, "09:00"), professional=sam, email="repeat@example.com")

        assert first.client_id == second.client_id
        assert db.query(Client).filter(Client.email == "repeat@example.com").count() == 1

    def test_concurrent_commits_exactly_one_wins(self, session_factory, db, salon):
        tenant, service, alex, _ = salon
        start = at(future_day(MONDAY), "09:00")
        tenant_id, service_id, professional_id = tenant.id, service.id, alex.id
        db.close()

        barrier = threading.Barrier(2)
        results = []
        results_lock = threading.Lock()

        def attempt(email):
            session = session_factory()
            try:
                barrier.wait()
                booking = BookingService(session).commit_booking(
                    tenant_id=tenant_id,
                    service_id=service_id,
                    start=start,
                    client_name="Racer",
                    client_email=email,
                    professional_id=professional_id,
                )
                outcome = ("ok", booking.id)
            except ScheduleConflict as e:
                outcome = ("conflict", e.reason)
            finally:
                session.close()
            with results_lock:
                results.append(outcome)

        threads = [threading.Thread(target=attempt, args=(f"racer{i}@example.com",)) for i in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(kind for kind, _ in results) == ["conflict", "ok"]
        check = session_factory()
        try:
            assert check.query(Booking).filter(Booking.professional_id == professional_id).count() == 1
        finally:
            check.close()


class TestStatusTransitions:
    def test_confirm_then_complete(self, db, salon):
        tenant, service, alex, _ = salon
        booking = commit(db, tenant, service, at(future_day(MONDAY), "09:00"), professional=alex)
        service_layer = BookingService(db)

        assert service_layer.update_status(tenant.id, booking.id, "CONFIRMED").status == "CONFIRMED"
        assert service_layer.update_status(tenant.id, booking.id, "completed").status == "COMPLETED"

    def test_repeat_cancel_is_explicit_error(self, db, salon):
        tenant, service, alex, _ = salon
        booking = commit(db, tenant, service, at(future_day(MONDAY), "09:00"), professional=alex)
        service_layer = BookingService(db)
        service_layer.update_status(tenant.id, booking.id, "CANCELLED")

        with pytest.raises(InvalidStatusTransition):
            service_layer.update_status(tenant.id, booking.id, "CANCELLED")

    @pytest.mark.parametrize("terminal", ["COMPLETED", "CANCELLED", "NO_SHOW"])
    def test_terminal_statuses_cannot_be_reopened(self, db, salon, terminal):
        tenant, service, alex, _ = salon
        day = future_day(MONDAY)
        booking = make_booking(
            db, service, at(day, "09:00"), at(day, "09:30"), professional=alex, status=BookingStatus(terminal)
        )

        with pytest.raises(InvalidStatusTransition):
            BookingService(db).update_status(tenant.id, booking.id, "CONFIRMED")

    def test_pending_cannot_skip_to_completed(self, db, salon):
        tenant, service, alex, _ = salon
        booking = commit(db, tenant, service, at(future_day(MONDAY), "09:00"), professional=alex)

        with pytest.raises(InvalidStatusTransition):
            BookingService(db).update_status(tenant.id, booking.id, "COMPLETED")

    def test_unknown_status_rejected(self, db, salon):
        tenant, service, alex, _ = salon
        booking = commit(db, tenant, service, at(future_day(MONDAY), "09:00"), professional=alex)

        with pytest.raises(ValidationError):
            BookingService(db).update_status(tenant.id, booking.id, "ARCHIVED")

    def test_confirm_rechecks_overlap(self, db, salon):
        tenant, service, alex, _ = salon
        day = future_day(MONDAY)
        make_booking(db, service, at(day, "09:00"), at(day, "09:30"), professional=alex)
        # Legacy pending row that overlaps a confirmed booking
        pending = make_booking(
            db, service, at(day, "09:15"), at(day, "09:45"), professional=alex,
            status=BookingStatus.PENDING, email="other@example.com",
        )

        with pytest.raises(ScheduleConflict):
            BookingService(db).update_status(tenant.id, pending.id, "CONFIRMED")

        db.expire_all()
        assert db.get(Booking, pending.id).status == "PENDING"

    def test_cancel_frees_interval(self, db, salon):
        tenant, service, alex, _ = salon
        day = future_day(MONDAY)
        booking = commit(db, tenant, service, at(day, "09:00"), professional=alex)
        BookingService(db).update_status(tenant.id, booking.id, "CANCELLED")

        again = commit(db, tenant, service, at(day, "09:00"), professional=alex, email="next@example.com")

        assert again.id != booking.id

    def test_other_tenant_cannot_touch_booking(self, db, salon):
        tenant, service, alex, _ = salon
        other, _ = make_tenant(db, name="Other")
        booking = commit(db, tenant, service, at(future_day(MONDAY), "09:00"), professional=alex)

        with pytest.raises(NotFoundError):
            BookingService(db).update_status(other.id, booking.id, "CANCELLED")


class TestDeleteAndList:
    def test_delete_booking(self, db, salon):
        tenant, service, alex, _ = salon
        booking = commit(db, tenant, service, at(future_day(MONDAY), "09:00"), professional=alex)
        booking_id = booking.id

        BookingService(db).delete_booking(tenant.id, booking_id)

        with pytest.raises(NotFoundError):
            BookingService(db).get_booking(tenant.id, booking_id)

    def test_list_filters_by_day_and_status(self, db, salon):
        tenant, service, alex, sam = salon
        day = future_day(MONDAY)
        next_week = day + timedelta(days=7)
        first = commit(db, tenant, service, at(day, "09:00"), professional=alex)
        commit(db, tenant, service, at(next_week, "09:00"), professional=alex, email="b@example.com")
        BookingService(db).update_status(tenant.id, first.id, "CONFIRMED")

        service_layer = BookingService(db)
        assert [b.id for b in service_layer.list_bookings(tenant.id, day=day)] == [first.id]
        assert len(service_layer.list_bookings(tenant.id)) == 2
        assert [b.id for b in service_layer.list_bookings(tenant.id, status="confirmed")] == [first.id]
