"""
Typed errors for the booking engine.

Services raise these; main.py renders them as JSON responses. Only
ScheduleConflict is retryable: the client should re-query availability and
pick another slot. Everything else is a hard failure.
"""
from __future__ import annotations

from typing import Any, Optional

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_CONFLICT = 409


class BookingEngineError(Exception):
    status_code: int = STATUS_BAD_REQUEST
    error_code: str = "booking_engine_error"
    retryable: bool = False

    def __init__(self, detail: str, extra: Optional[dict[str, Any]] = None):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra or {}

    def to_dict(self) -> dict[str, Any]:
        payload = {"detail": self.detail, "error": self.error_code, "retryable": self.retryable}
        if self.extra:
            payload.update(self.extra)
        return payload


class NotFoundError(BookingEngineError):
    """Tenant, service, professional or booking absent or inactive for the tenant."""

    status_code = STATUS_NOT_FOUND
    error_code = "not_found"


class ValidationError(BookingEngineError):
    """Malformed input: bad time range, unknown status, booking in the past."""

    status_code = STATUS_BAD_REQUEST
    error_code = "validation_error"


class InvalidStatusTransition(ValidationError):
    status_code = STATUS_CONFLICT
    error_code = "invalid_status_transition"


class WindowOverlapError(ValidationError):
    """An availability window overlaps another active window of the same owner and day."""

    status_code = STATUS_CONFLICT
    error_code = "window_overlap"


class SlotNotBookable(ValidationError):
    """
    The interval can never be booked as requested: it lies outside the
    service's or professional's hours, or nobody performs the service.
    """

    status_code = STATUS_CONFLICT
    error_code = "slot_not_bookable"

    def __init__(self, detail: str, reason: str):
        super().__init__(detail, {"reason": reason})
        self.reason = reason


class ScheduleConflict(BookingEngineError):
    """The requested interval is occupied or no longer bookable."""

    status_code = STATUS_CONFLICT
    error_code = "schedule_conflict"
    retryable = True

    def __init__(
        self,
        detail: str = "This time slot is no longer available",
        reason: Optional[str] = None,
        conflicting_booking_id: Optional[int] = None,
    ):
        extra: dict[str, Any] = {}
        if reason:
            extra["reason"] = reason
        if conflicting_booking_id is not None:
            extra["conflicting_booking_id"] = conflicting_booking_id
        super().__init__(detail, extra)
        self.reason = reason
        self.conflicting_booking_id = conflicting_booking_id
