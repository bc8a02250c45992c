"""
VnstatDashboard - Look-back Windows

Defines the supported chart look-back windows and, for each one, the range
cutoff, the bucket key function and the clock-skew standardization interval.

Every window targets 60 chart points:

    label  duration  bucket width   standardize
    1h     1 hour    1 minute       5 s
    6h     6 hours   6 minutes      5 s
    12h    12 hours  12 minutes     30 s
    1d     24 hours  24 minutes     30 s
    3d     3 days    ~1.2 hours     60 s
    1w     7 days    ~2.8 hours     60 s

Sub-hour buckets are anchored to the local calendar hour; the multi-hour
buckets are anchored to the local calendar day.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional


logger = logging.getLogger(__name__)

DEFAULT_WINDOW = "1h"
TARGET_POINTS = 60

BucketFunction = Callable[[datetime], datetime]


@dataclass(frozen=True)
class WindowSpec:
    """
    Configuration of one look-back window.

    Exactly one of bucket_minutes / bucket_tenths_of_hour is set.
    """
    label: str
    duration: timedelta
    standardize_seconds: int
    backend_range: str
    backend_limit: int
    bucket_minutes: Optional[int] = None
    bucket_tenths_of_hour: Optional[int] = None
    target_points: int = TARGET_POINTS

    @property
    def bucket_width(self) -> timedelta:
        """Nominal bucket width."""
        if self.bucket_minutes is not None:
            return timedelta(minutes=self.bucket_minutes)
        return timedelta(minutes=6 * (self.bucket_tenths_of_hour or 0))


WINDOWS: Dict[str, WindowSpec] = {
    "1h": WindowSpec("1h", timedelta(hours=1), 5, "75m", 900, bucket_minutes=1),
    "6h": WindowSpec("6h", timedelta(hours=6), 5, "8h", 600, bucket_minutes=6),
    "12h": WindowSpec("12h", timedelta(hours=12), 30, "15h", 800, bucket_minutes=12),
    "1d": WindowSpec("1d", timedelta(hours=24), 30, "30h", 1440, bucket_minutes=24),
    "3d": WindowSpec("3d", timedelta(days=3), 60, "4d", 720, bucket_tenths_of_hour=12),
    "1w": WindowSpec("1w", timedelta(days=7), 60, "10d", 840, bucket_tenths_of_hour=28),
}


def get_window_spec(label: Optional[str]) -> WindowSpec:
    """
    Look up a window by label.

    Unknown labels fall back to the 1h window so the chart stays usable.
    """
    spec = WINDOWS.get(label or "")
    if spec is None:
        logger.debug(f"Unknown window label {label!r}, using {DEFAULT_WINDOW}")
        return WINDOWS[DEFAULT_WINDOW]
    return spec


def get_cutoff(label: Optional[str], now: datetime) -> datetime:
    """Earliest instant retained for the window (now - duration)."""
    return now - get_window_spec(label).duration


def get_target_points(label: Optional[str]) -> int:
    """Maximum number of points the chart expects for the window."""
    return get_window_spec(label).target_points


def get_backend_time_range(label: Optional[str]) -> str:
    """Range to request from the API; wider than the window for full coverage."""
    return get_window_spec(label).backend_range


def get_backend_limit(label: Optional[str]) -> int:
    """Raw row limit to request from the API for the window."""
    return get_window_spec(label).backend_limit


def standardize_timestamp(
    instant: datetime,
    label: Optional[str],
    intervals: Optional[Dict[str, int]] = None
) -> datetime:
    """
    Snap an instant down to the window's standardization interval.

    Absorbs small clock differences between servers before bucketing.

    Args:
        instant: Normalized, timezone-aware instant
        label: Window label
        intervals: Optional per-label override of the interval in seconds

    Returns:
        Instant with seconds floored to the interval and microseconds cleared

    Raises:
        ValueError: If the interval is outside 1..60 seconds
    """
    spec = get_window_spec(label)
    interval = spec.standardize_seconds
    if intervals and spec.label in intervals:
        interval = intervals[spec.label]

    if not 1 <= interval <= 60:
        raise ValueError(f"Standardization interval must be 1-60 seconds, got {interval}")

    second = (instant.second // interval) * interval
    return instant.replace(second=second, microsecond=0)


def _minute_bucket(width_minutes: int) -> BucketFunction:
    """Buckets of width_minutes anchored to the start of the local hour."""
    def bucket(instant: datetime) -> datetime:
        minute = (instant.minute // width_minutes) * width_minutes
        return instant.replace(minute=minute, second=0, microsecond=0)
    return bucket


def _hour_bucket(width_tenths: int) -> BucketFunction:
    """
    Buckets of width_tenths/10 hours anchored to the start of the local day.

    The bucket start is truncated to a whole hour, so the 1.2h and 2.8h
    widths produce slightly uneven buckets that always start on the hour.
    The start is elapsed time from local midnight, not a wall-clock hour,
    so a DST gap or fold never maps two buckets onto one instant.
    """
    def bucket(instant: datetime) -> datetime:
        index = (instant.hour * 10) // width_tenths
        start_hour = (index * width_tenths) // 10
        day_start = instant.replace(hour=0, minute=0, second=0, microsecond=0, fold=0)
        start = day_start.astimezone(timezone.utc) + timedelta(hours=start_hour)
        return start.astimezone(instant.tzinfo)
    return bucket


def get_bucket_function(label: Optional[str]) -> BucketFunction:
    """
    Return the bucket key function for a window.

    The function maps an instant to the start of its containing bucket,
    computed on the instant's own wall clock (its target timezone).
    """
    spec = get_window_spec(label)
    if spec.bucket_minutes is not None:
        return _minute_bucket(spec.bucket_minutes)
    return _hour_bucket(spec.bucket_tenths_of_hour or 10)
