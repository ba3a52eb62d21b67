"""Candidate slot start times for one date."""
from typing import Iterable, List

from ...errors import ValidationError
from .weekly_schedule import TimeRange

DEFAULT_STEP_MINUTES = 30


def generate_slots(
    windows: Iterable[TimeRange], duration_minutes: int, step_minutes: int = DEFAULT_STEP_MINUTES
) -> List[int]:
    """
    Emit start minutes t = start, start+step, ... while t + duration <= end.

    Step is independent of duration. Output is sorted and de-duplicated, so
    overlapping windows never produce the same slot twice.
    """
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationError("Service duration must be a positive number of minutes")
    if step_minutes is None or step_minutes <= 0:
        raise ValidationError("Slot step must be a positive number of minutes")

    starts = set()
    for window in windows:
        if window.is_empty:
            continue
        t = window.start
        while t + duration_minutes <= window.end:
            starts.add(t)
            t += step_minutes
    return sorted(starts)
