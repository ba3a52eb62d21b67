"""
Weekly Schedule Model

Recurring weekly availability for a service or a professional. Windows are
held as minute-of-day ranges so the rest of the scheduling code can do plain
integer arithmetic. A day with no active window means "not working"; the 24/7
case is decided once at the service level, never here.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ...shared.validators import validate_day_of_week, validate_hhmm

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True, order=True)
class TimeRange:
    """Half-open [start, end) in minutes from midnight, 0 <= start, end <= 1440."""

    start: int
    end: int

    @property
    def is_empty(self) -> bool:
        return self.start >= self.end

    def contains(self, start: int, end: int) -> bool:
        return self.start <= start and end <= self.end

    def overlaps(self, other: "TimeRange") -> bool:
        return self.start < other.end and other.start < self.end


FULL_DAY = TimeRange(0, MINUTES_PER_DAY)


@dataclass(frozen=True)
class WeeklyWindow:
    day_of_week: int  # 0=Sunday .. 6=Saturday
    range: TimeRange
    is_active: bool = True


def parse_hhmm(value: str) -> int:
    """Convert "HH:MM" (or "24:00") to minutes from midnight."""
    value = validate_hhmm(value, allow_end_of_day=True)
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_hhmm(minutes: int) -> str:
    """Convert minutes from midnight to "HH:MM"; 1440 renders as "24:00"."""
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"Minute of day out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def window_from_row(row) -> Optional[WeeklyWindow]:
    """
    Build a WeeklyWindow from a service/professional availability row.

    Rows with malformed times are skipped with a warning rather than breaking
    the whole day's availability.
    """
    try:
        day = validate_day_of_week(row.day_of_week)
        time_range = TimeRange(parse_hhmm(row.start_time), parse_hhmm(row.end_time))
    except ValueError as e:
        logger.warning(f"⚠️ Skipping malformed availability window {getattr(row, 'id', None)}: {e}")
        return None
    return WeeklyWindow(day_of_week=day, range=time_range, is_active=bool(row.is_active))


class WeeklySchedule:
    """Recurring weekly windows of one owner (a service or a professional)."""

    def __init__(self, windows: Iterable[WeeklyWindow] = ()):
        self._windows = tuple(windows)

    @classmethod
    def from_rows(cls, rows) -> "WeeklySchedule":
        windows = [window_from_row(row) for row in rows]
        return cls(w for w in windows if w is not None)

    def windows_for(self, day_of_week: int) -> List[TimeRange]:
        """Active, non-degenerate windows of one day, sorted by start."""
        return sorted(
            w.range
            for w in self._windows
            if w.day_of_week == day_of_week and w.is_active and not w.range.is_empty
        )


def service_windows_for(unrestricted: bool, schedule: WeeklySchedule, day_of_week: int) -> List[TimeRange]:
    """
    Day windows of a service.

    An unrestricted service is open all day, every day. A restricted service
    with no windows for the day is closed.
    """
    if unrestricted:
        return [FULL_DAY]
    return schedule.windows_for(day_of_week)
