"""Scheduling repository - Database operations for availability and bookings"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import and_, or_, text
from sqlalchemy.orm import Session

from ...models import (
    OCCUPYING_STATUSES,
    Booking,
    Client,
    Professional,
    ProfessionalAvailability,
    Service,
    ServiceAvailability,
    Tenant,
)

logger = logging.getLogger(__name__)


def _is_sqlite(db: Session) -> bool:
    return db.get_bind().dialect.name == "sqlite"


class SchedulingRepository:
    """Repository for scheduling database operations"""

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @staticmethod
    def get_tenant(db: Session, tenant_id: int) -> Optional[Tenant]:
        """Get an active tenant"""
        return db.query(Tenant).filter(Tenant.id == tenant_id, Tenant.is_active.is_(True)).first()

    @staticmethod
    def get_tenant_by_api_key_hash(db: Session, api_key_hash: str) -> Optional[Tenant]:
        return (
            db.query(Tenant)
            .filter(Tenant.api_key_hash == api_key_hash, Tenant.is_active.is_(True))
            .first()
        )

    @staticmethod
    def get_service(
        db: Session, tenant_id: int, service_id: int, active_only: bool = True
    ) -> Optional[Service]:
        """Get a service owned by the tenant"""
        query = db.query(Service).filter(Service.id == service_id, Service.tenant_id == tenant_id)
        if active_only:
            query = query.filter(Service.is_active.is_(True))
        return query.first()

    @staticmethod
    def get_professional(db: Session, tenant_id: int, professional_id: int) -> Optional[Professional]:
        """Get a professional owned by the tenant"""
        return (
            db.query(Professional)
            .filter(Professional.id == professional_id, Professional.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_qualified_professionals(db: Session, service: Service) -> list[Professional]:
        """Available professionals qualified for the service, ordered by id"""
        return (
            db.query(Professional)
            .filter(
                Professional.tenant_id == service.tenant_id,
                Professional.is_available.is_(True),
                Professional.services.any(Service.id == service.id),
            )
            .order_by(Professional.id)
            .all()
        )

    @staticmethod
    def is_qualified(db: Session, professional: Professional, service: Service) -> bool:
        return (
            db.query(Professional.id)
            .filter(
                Professional.id == professional.id,
                Professional.services.any(Service.id == service.id),
            )
            .first()
            is not None
        )

    # ------------------------------------------------------------------
    # Availability windows
    # ------------------------------------------------------------------

    @staticmethod
    def get_service_windows(db: Session, service_id: int) -> list[ServiceAvailability]:
        return (
            db.query(ServiceAvailability)
            .filter(ServiceAvailability.service_id == service_id)
            .order_by(ServiceAvailability.day_of_week, ServiceAvailability.start_time)
            .all()
        )

    @staticmethod
    def get_professional_windows(db: Session, professional_id: int) -> list[ProfessionalAvailability]:
        return (
            db.query(ProfessionalAvailability)
            .filter(ProfessionalAvailability.professional_id == professional_id)
            .order_by(ProfessionalAvailability.day_of_week, ProfessionalAvailability.start_time)
            .all()
        )

    @staticmethod
    def add_window(db: Session, window) -> None:
        db.add(window)
        db.commit()
        db.refresh(window)

    @staticmethod
    def delete_window(db: Session, window) -> None:
        db.delete(window)
        db.commit()

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    @staticmethod
    def get_occupying_bookings(
        db: Session,
        tenant_id: int,
        range_start: datetime,
        range_end: datetime,
        service_id: int,
        professional_ids: Iterable[int] = (),
    ) -> list[Booking]:
        """
        PENDING/CONFIRMED bookings overlapping [range_start, range_end) that
        belong to the service or to any of the given professionals.
        """
        professional_ids = list(professional_ids)
        scope = Booking.service_id == service_id
        if professional_ids:
            scope = or_(scope, Booking.professional_id.in_(professional_ids))
        return (
            db.query(Booking)
            .filter(
                Booking.tenant_id == tenant_id,
                Booking.status.in_(OCCUPYING_STATUSES),
                Booking.start_datetime < range_end,
                Booking.end_datetime > range_start,
                scope,
            )
            .order_by(Booking.start_datetime)
            .all()
        )

    @staticmethod
    def find_overlapping(
        db: Session,
        start: datetime,
        end: datetime,
        service_id: int,
        professional_id: Optional[int] = None,
        exclude_booking_id: Optional[int] = None,
    ) -> Optional[Booking]:
        """
        First occupying booking in scope overlapping [start, end).

        Scope is the professional's calendar plus the service's bookings that
        have no professional, when one is given; otherwise the service's
        bookings. Outside SQLite this is a locking read, so it sees rows
        committed while the caller waited in lock_scope.
        """
        query = db.query(Booking).filter(
            Booking.status.in_(OCCUPYING_STATUSES),
            Booking.start_datetime < end,
            Booking.end_datetime > start,
        )
        if professional_id is not None:
            query = query.filter(
                or_(
                    Booking.professional_id == professional_id,
                    and_(Booking.professional_id.is_(None), Booking.service_id == service_id),
                )
            )
        else:
            query = query.filter(Booking.service_id == service_id)
        if exclude_booking_id is not None:
            query = query.filter(Booking.id != exclude_booking_id)
        if not _is_sqlite(db):
            query = query.with_for_update()
        return query.order_by(Booking.start_datetime).first()

    @staticmethod
    def get_booking(db: Session, tenant_id: int, booking_id: int) -> Optional[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.id == booking_id, Booking.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def list_bookings(
        db: Session,
        tenant_id: int,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None,
        status: Optional[str] = None,
    ) -> list[Booking]:
        query = db.query(Booking).filter(Booking.tenant_id == tenant_id)
        if range_start is not None:
            query = query.filter(Booking.start_datetime >= range_start)
        if range_end is not None:
            query = query.filter(Booking.start_datetime < range_end)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.start_datetime).all()

    @staticmethod
    def add_booking(db: Session, booking: Booking) -> Booking:
        """Stage a booking in the current transaction; the caller commits"""
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def delete_booking(db: Session, booking: Booking) -> None:
        db.delete(booking)
        db.commit()

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    @staticmethod
    def find_or_create_client(
        db: Session, tenant_id: int, name: str, email: str, phone: Optional[str] = None
    ) -> Client:
        """Find a client by (tenant, email) or stage a new one; the caller commits"""
        client = (
            db.query(Client).filter(Client.tenant_id == tenant_id, Client.email == email).first()
        )
        if client:
            if phone and not client.phone:
                client.phone = phone
            return client

        client = Client(tenant_id=tenant_id, name=name, email=email, phone=phone)
        db.add(client)
        db.flush()
        logger.info(f"👤 Created client {client.id} for tenant {tenant_id}")
        return client

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @staticmethod
    def lock_scope(db: Session, service_id: int, professional_ids: Iterable[int] = ()) -> None:
        """
        Serialize writers on a booking scope for the rest of the transaction.

        Must be the first statement of the transaction that writes. On
        PostgreSQL and MySQL the service row is locked first, then professional
        rows in ascending id order. SQLite has no row locks, so the database
        write lock is taken up front with BEGIN IMMEDIATE.

        Under MySQL's REPEATABLE READ the read snapshot can predate the lock,
        so checks made after it must be locking reads (see find_overlapping).
        """
        if _is_sqlite(db):
            db.execute(text("BEGIN IMMEDIATE"))
            return

        db.query(Service.id).filter(Service.id == service_id).with_for_update().one()
        ids = sorted(set(professional_ids))
        if ids:
            (
                db.query(Professional.id)
                .filter(Professional.id.in_(ids))
                .order_by(Professional.id)
                .with_for_update()
                .all()
            )
