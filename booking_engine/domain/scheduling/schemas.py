"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.timeutils import as_utc
from ...shared.validators import normalize_phone, validate_day_of_week, validate_email, validate_hhmm

# ============================================================================
# AVAILABILITY WINDOWS
# ============================================================================


class WindowCreate(BaseModel):
    """Schema for adding a weekly availability window"""

    day_of_week: int = Field(..., description="0=Sunday .. 6=Saturday")
    start_time: str = Field(..., description="HH:MM, UTC")
    end_time: str = Field(..., description="HH:MM, UTC; 24:00 means end of day")
    is_active: bool = True

    @field_validator("day_of_week")
    @classmethod
    def check_day(cls, v):
        return validate_day_of_week(v)

    @field_validator("start_time")
    @classmethod
    def check_start(cls, v):
        return validate_hhmm(v)

    @field_validator("end_time")
    @classmethod
    def check_end(cls, v):
        return validate_hhmm(v, allow_end_of_day=True)


class WindowResponse(BaseModel):
    id: int
    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool

    class Config:
        from_attributes = True


class AvailabilityModeUpdate(BaseModel):
    """Switch a service between 24/7 and window-restricted availability"""

    unrestricted: bool


class ServiceAvailabilityResponse(BaseModel):
    service_id: int
    unrestricted: bool
    windows: list[WindowResponse]


class ProfessionalAvailabilityResponse(BaseModel):
    professional_id: int
    windows: list[WindowResponse]


# ============================================================================
# SLOTS
# ============================================================================


class ProfessionalRefResponse(BaseModel):
    id: int
    name: str


class SlotResponse(BaseModel):
    time: str
    start: datetime
    end: datetime
    is_available: bool
    reason: Optional[str] = None
    professionals: list[ProfessionalRefResponse] = []


class AvailabilityResponse(BaseModel):
    service_id: int
    date: date
    professional_id: Optional[int] = None
    slots: list[SlotResponse]


# ============================================================================
# BOOKINGS
# ============================================================================


class ClientInfo(BaseModel):
    """Identity of the person booking"""

    name: str = Field(..., min_length=1, max_length=255)
    email: str
    phone: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if not v:
            raise ValueError("Email is required")
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        if v:
            return normalize_phone(v)
        return v


class BookingCreate(BaseModel):
    """Schema for committing a booking. Naive datetimes are taken as UTC."""

    service_id: int
    professional_id: Optional[int] = None
    start: datetime
    end: Optional[datetime] = None
    client: ClientInfo
    notes: Optional[str] = Field(None, max_length=2000)


class BookingStatusUpdate(BaseModel):
    status: str


class BookingResponse(BaseModel):
    id: int
    tenant_id: int
    service_id: int
    professional_id: Optional[int] = None
    client_id: int
    start_datetime: datetime
    end_datetime: datetime
    status: str
    total_price: Optional[float] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("start_datetime", "end_datetime")
    @classmethod
    def mark_utc(cls, v):
        return as_utc(v)

    class Config:
        from_attributes = True
