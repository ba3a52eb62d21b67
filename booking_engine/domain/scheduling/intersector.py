"""Schedule Intersector: narrow service windows to when a professional works."""
from typing import List, Optional, Sequence

from .weekly_schedule import TimeRange


def intersect(a: TimeRange, b: TimeRange) -> Optional[TimeRange]:
    start = max(a.start, b.start)
    end = min(a.end, b.end)
    if start < end:
        return TimeRange(start, end)
    return None


def effective_windows(
    service_windows: Sequence[TimeRange],
    professional_windows: Optional[Sequence[TimeRange]] = None,
) -> List[TimeRange]:
    """
    Windows in which a booking may fall.

    Without a professional the service windows are returned unchanged. With
    one, every service window is intersected with every professional window;
    a professional with no windows that day yields nothing, whatever the
    service allows.
    """
    if professional_windows is None:
        return sorted(service_windows)

    result = []
    for service_window in service_windows:
        for professional_window in professional_windows:
            overlap = intersect(service_window, professional_window)
            if overlap is not None:
                result.append(overlap)
    return sorted(set(result))


def fits_in_windows(windows: Sequence[TimeRange], start: int, end: int) -> bool:
    """True if [start, end) lies entirely inside a single window."""
    return any(window.contains(start, end) for window in windows)
