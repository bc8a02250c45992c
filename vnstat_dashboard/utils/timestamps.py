"""
VnstatDashboard - Timestamp Normalization

Converts the timestamp shapes returned by the backend API into timezone-aware
datetimes expressed in the dashboard's display timezone.

Accepted inputs:
- ISO-8601 strings with an offset or "Z" suffix
- ISO-like strings without a marker (SQL DATETIME columns), treated as UTC
- Numeric epoch values in milliseconds
- datetime instances (naive values are treated as UTC)
"""

import logging
import math
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


logger = logging.getLogger(__name__)

UTC_SENTINEL = "UTC"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@lru_cache(maxsize=64)
def resolve_timezone(name: Optional[str]) -> tzinfo:
    """
    Resolve a timezone identifier to a tzinfo instance.

    Args:
        name: IANA identifier (e.g. "Europe/Berlin") or "UTC"

    Returns:
        tzinfo for calendar operations

    Raises:
        ValueError: If the identifier is not a known IANA zone
    """
    if not name or name == UTC_SENTINEL:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as error:
        raise ValueError(f"Unknown timezone identifier: {name!r}") from error


def _parse_string(raw: str) -> Optional[datetime]:
    """Parse an ISO or SQL datetime string; naive results are UTC."""
    text = raw.strip()
    if not text:
        return None

    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_epoch_ms(raw: float) -> Optional[datetime]:
    """Convert epoch milliseconds to an aware UTC datetime."""
    if not math.isfinite(raw):
        return None
    try:
        return EPOCH + timedelta(milliseconds=raw)
    except OverflowError:
        return None


def to_instant(raw: Any) -> Optional[datetime]:
    """
    Parse a raw timestamp into an aware datetime without changing zone.

    Returns:
        Aware datetime, or None when the value is empty or unparseable
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, datetime):
        if raw.tzinfo is None:
            return raw.replace(tzinfo=timezone.utc)
        return raw

    if isinstance(raw, str):
        return _parse_string(raw)

    if isinstance(raw, (int, float)):
        return _parse_epoch_ms(float(raw))

    return None


def normalize_timestamp(raw: Any, target_timezone: Optional[str] = UTC_SENTINEL) -> Optional[datetime]:
    """
    Normalize a raw timestamp to the target timezone.

    The absolute instant is preserved; only the wall-clock representation
    changes, so minute/hour/day boundaries follow the target timezone.

    Args:
        raw: Timestamp as ISO string, SQL datetime string, epoch ms or datetime
        target_timezone: IANA identifier or "UTC"

    Returns:
        Aware datetime in the target timezone, or None if raw is unusable

    Raises:
        ValueError: If target_timezone is not a known zone
    """
    zone = resolve_timezone(target_timezone)
    instant = to_instant(raw)
    if instant is None:
        return None

    try:
        return instant.astimezone(zone)
    except (OverflowError, ValueError) as error:
        logger.debug(f"Timestamp {raw!r} out of range for {target_timezone}: {error}")
        return None
