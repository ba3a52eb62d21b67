"""Shared test fixtures and helpers."""

from datetime import date, datetime, timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from booking_engine import config
from booking_engine.database import Base, build_engine, get_db
from booking_engine.main import app
from booking_engine.models import (
    Booking,
    BookingStatus,
    Client,
    Professional,
    ProfessionalAvailability,
    Service,
    ServiceAvailability,
    Tenant,
)
from booking_engine.rate_limiter import reset_rate_limits
from booking_engine.security_utils import generate_api_key, hash_api_key
from booking_engine.shared.timeutils import day_of_week, utc_now


def future_day(dow: int, weeks_ahead: int = 2) -> date:
    """A date at least `weeks_ahead` weeks out falling on dow (0=Sunday)."""
    base = utc_now().date() + timedelta(weeks=weeks_ahead)
    return base + timedelta(days=(dow - day_of_week(base)) % 7)


MONDAY = 1
TUESDAY = 2


def at(day: date, hhmm: str) -> datetime:
    hours, minutes = hhmm.split(":")
    return datetime(day.year, day.month, day.day, int(hours), int(minutes))


@pytest.fixture(autouse=True)
def _no_rate_limit(monkeypatch):
    monkeypatch.setattr(config, "RATE_LIMIT_ENABLED", False)
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def engine(tmp_path):
    db_engine = build_engine(f"sqlite:///{tmp_path / 'booking_engine_test.db'}")
    Base.metadata.create_all(bind=db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ----------------------------------------------------------------------
# Seeding helpers. Each commits, so later sessions see the rows.
# ----------------------------------------------------------------------


def make_tenant(db, name: str = "Acme Salon", active: bool = True) -> tuple[Tenant, str]:
    """Create a tenant and return it with its plaintext API key."""
    api_key = generate_api_key()
    tenant = Tenant(name=name, is_active=active, api_key_hash=hash_api_key(api_key))
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    return tenant, api_key


def make_service(
    db,
    tenant: Tenant,
    name: str = "Haircut",
    duration_minutes: int = 30,
    price: Optional[float] = 40.0,
    windows: Optional[list[tuple[int, str, str]]] = None,
    unrestricted: Optional[bool] = None,
    is_active: bool = True,
) -> Service:
    """Windows are (day_of_week, start, end). Leave unrestricted unset to let the model derive it."""
    service = Service(
        tenant_id=tenant.id,
        name=name,
        duration_minutes=duration_minutes,
        price=price,
        unrestricted=unrestricted,
        is_active=is_active,
        windows=[
            ServiceAvailability(day_of_week=dow, start_time=start, end_time=end)
            for dow, start, end in windows or []
        ],
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service


def make_professional(
    db,
    tenant: Tenant,
    name: str = "Alex",
    services: Optional[list[Service]] = None,
    windows: Optional[list[tuple[int, str, str]]] = None,
    is_available: bool = True,
) -> Professional:
    professional = Professional(tenant_id=tenant.id, name=name, is_available=is_available)
    professional.services = list(services or [])
    db.add(professional)
    db.flush()
    for dow, start, end in windows or []:
        db.add(
            ProfessionalAvailability(
                professional_id=professional.id, day_of_week=dow, start_time=start, end_time=end
            )
        )
    db.commit()
    db.refresh(professional)
    return professional


def make_booking(
    db,
    service: Service,
    start: datetime,
    end: datetime,
    professional: Optional[Professional] = None,
    status: BookingStatus = BookingStatus.CONFIRMED,
    email: str = "existing@example.com",
) -> Booking:
    client = db.query(Client).filter(Client.tenant_id == service.tenant_id, Client.email == email).first()
    if client is None:
        client = Client(tenant_id=service.tenant_id, name="Existing Client", email=email)
        db.add(client)
        db.flush()
    booking = Booking(
        tenant_id=service.tenant_id,
        service_id=service.id,
        professional_id=professional.id if professional else None,
        client_id=client.id,
        start_datetime=start,
        end_datetime=end,
        status=status.value,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def auth_headers(api_key: str) -> dict:
    return {"Authorization": f"Bearer {api_key}"}
