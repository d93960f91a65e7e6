# gridscout/discovery/window.py

from datetime import datetime, timedelta, timezone
from typing import Optional

from gridscout.models.enums import Direction
from gridscout.models.window import TimeWindow

# Two weeks, applied once when the first discovery pass finds nothing
WIDEN_HOURS = 336

# Window bounds are clamped to this range
EARLIEST_BOUND = datetime(1970, 1, 1, tzinfo=timezone.utc)
LATEST_BOUND = datetime(9999, 12, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)


def _utc_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def clamp_bound(moment: datetime) -> datetime:
    moment = _utc_now(moment)
    return min(max(moment, EARLIEST_BOUND), LATEST_BOUND)


def _shift(moment: datetime, hours: float) -> datetime:
    """``moment`` moved by ``hours`` (negative looks back), clamped to the bound range."""
    try:
        shifted = moment + timedelta(hours=hours)
    except OverflowError:
        return LATEST_BOUND if hours > 0 else EARLIEST_BOUND
    return clamp_bound(shifted)


def compute_window(direction: Direction, hours: float, now: Optional[datetime] = None) -> TimeWindow:
    """``past`` looks back ``hours`` from now, ``next`` looks ahead."""
    if hours <= 0:
        raise ValueError(f"hours must be positive, got {hours}")
    now = clamp_bound(_utc_now(now))
    if Direction(direction) is Direction.NEXT:
        return TimeWindow(gte=now, lte=_shift(now, hours))
    return TimeWindow(gte=_shift(now, -hours), lte=now)


def widen_window(window: TimeWindow, direction: Direction, extra_hours: float = WIDEN_HOURS) -> TimeWindow:
    """Moves the boundary furthest from now outwards; the other one stays put."""
    if Direction(direction) is Direction.NEXT:
        return TimeWindow(gte=window.gte, lte=_shift(window.lte, extra_hours))
    return TimeWindow(gte=_shift(window.gte, -extra_hours), lte=window.lte)


def days_back_window(days: int, now: Optional[datetime] = None) -> TimeWindow:
    return compute_window(Direction.PAST, days * 24, now)
