import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Session, relationship
from sqlalchemy.sql import func

from .database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# Statuses that hold their time interval. Everything else never blocks a slot.
OCCUPYING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


# Qualification: which professionals may perform which services
professional_services = Table(
    "professional_services",
    Base.metadata,
    Column(
        "professional_id",
        Integer,
        ForeignKey("professionals.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "service_id",
        Integer,
        ForeignKey("services.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    api_key_hash = Column(String(64), unique=True, index=True, nullable=True)  # sha256 hex
    created_at = Column(DateTime, server_default=func.now())

    services = relationship("Service", back_populates="tenant", cascade="all, delete-orphan")
    professionals = relationship(
        "Professional", back_populates="tenant", cascade="all, delete-orphan"
    )


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    # Explicit 24/7 sentinel. When set, windows are ignored and the whole day is open.
    # Left unset, it is derived on insert: open all day only if created without windows.
    unrestricted = Column(Boolean, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="services")
    windows = relationship(
        "ServiceAvailability",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="ServiceAvailability.start_time",
    )
    professionals = relationship(
        "Professional", secondary=professional_services, back_populates="services"
    )

    __table_args__ = (CheckConstraint("duration_minutes > 0", name="ck_service_duration"),)


class Professional(Base):
    __tablename__ = "professionals"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    tenant = relationship("Tenant", back_populates="professionals")
    windows = relationship(
        "ProfessionalAvailability",
        back_populates="professional",
        cascade="all, delete-orphan",
        order_by="ProfessionalAvailability.start_time",
    )
    services = relationship(
        "Service", secondary=professional_services, back_populates="professionals"
    )


class ServiceAvailability(Base):
    __tablename__ = "service_availability"

    id = Column(Integer, primary_key=True, index=True)
    service_id = Column(
        Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday .. 6=Saturday
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM, "24:00" allowed
    is_active = Column(Boolean, default=True, nullable=False)

    service = relationship("Service", back_populates="windows")

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_service_window_day"),
        CheckConstraint("start_time < end_time", name="ck_service_window_range"),
    )


class ProfessionalAvailability(Base):
    __tablename__ = "professional_availability"

    id = Column(Integer, primary_key=True, index=True)
    professional_id = Column(
        Integer, ForeignKey("professionals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday .. 6=Saturday
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    professional = relationship("Professional", back_populates="windows")

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_professional_window_day"),
        CheckConstraint("start_time < end_time", name="ck_professional_window_range"),
    )


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    bookings = relationship("Booking", back_populates="client")

    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_client_tenant_email"),)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    professional_id = Column(Integer, ForeignKey("professionals.id"), nullable=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    # Naive UTC
    start_datetime = Column(DateTime, nullable=False)
    end_datetime = Column(DateTime, nullable=False)
    status = Column(String(20), default=BookingStatus.PENDING.value, nullable=False)
    total_price = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    service = relationship("Service")
    professional = relationship("Professional")
    client = relationship("Client", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("start_datetime < end_datetime", name="ck_booking_range"),
        Index("ix_bookings_service_start", "service_id", "start_datetime"),
        Index("ix_bookings_professional_start", "professional_id", "start_datetime"),
    )


@event.listens_for(Session, "before_flush")
def sync_service_availability_mode(session, flush_context, instances):
    """
    Keep Service.unrestricted consistent with window rows written directly
    through the ORM (seeds, imports, other endpoints).

    A new service without an explicit mode is 24/7 only when it has no
    windows. A window added to an existing 24/7 service makes it
    window-restricted.
    """
    with session.no_autoflush:
        for obj in list(session.new):
            if isinstance(obj, Service) and obj.unrestricted is None:
                obj.unrestricted = not obj.windows

        for obj in list(session.new):
            if not isinstance(obj, ServiceAvailability):
                continue
            service = obj.service
            if service is None and obj.service_id is not None:
                service = session.get(Service, obj.service_id)
            if service is not None and service not in session.new and service.unrestricted:
                service.unrestricted = False
