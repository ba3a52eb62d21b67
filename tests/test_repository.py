"""Tests for the locking behaviour of the scheduling repository."""

from datetime import datetime
from unittest.mock import MagicMock

from booking_engine.domain.scheduling.repository import SchedulingRepository
from conftest import MONDAY, at, future_day, make_booking, make_professional, make_service, make_tenant


def fake_session(dialect_name):
    session = MagicMock()
    session.get_bind.return_value.dialect.name = dialect_name
    query = session.query.return_value
    query.filter.return_value = query
    query.with_for_update.return_value = query
    query.order_by.return_value = query
    query.first.return_value = None
    return session, query


class TestFindOverlapping:
    def test_locking_read_outside_sqlite(self):
        for dialect_name in ("mysql", "postgresql"):
            session, query = fake_session(dialect_name)

            SchedulingRepository.find_overlapping(
                session, datetime(2030, 1, 7, 9), datetime(2030, 1, 7, 9, 30), 1, professional_id=10
            )

            query.with_for_update.assert_called_once_with()

    def test_plain_read_on_sqlite(self):
        session, query = fake_session("sqlite")

        SchedulingRepository.find_overlapping(session, datetime(2030, 1, 7, 9), datetime(2030, 1, 7, 9, 30), 1)

        query.with_for_update.assert_not_called()

    def test_unassigned_booking_of_service_is_in_scope(self, db):
        tenant, _ = make_tenant(db)
        service = make_service(db, tenant, windows=[(MONDAY, "09:00", "12:00")])
        other = make_service(db, tenant, name="Colour", windows=[(MONDAY, "09:00", "12:00")])
        pro = make_professional(db, tenant, services=[service, other], windows=[(MONDAY, "09:00", "12:00")])
        day = future_day(MONDAY)
        unassigned = make_booking(db, service, at(day, "09:00"), at(day, "09:30"))

        found = SchedulingRepository.find_overlapping(
            db, at(day, "09:15"), at(day, "09:45"), service.id, professional_id=pro.id
        )
        elsewhere = SchedulingRepository.find_overlapping(
            db, at(day, "09:15"), at(day, "09:45"), other.id, professional_id=pro.id
        )

        assert found.id == unassigned.id
        assert elsewhere is None
