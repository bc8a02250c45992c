"""
VnstatDashboard - Display Formatting

Unit conversion and status text shared by the chart data provider and CLI.
"""

import math
from datetime import datetime
from typing import Any, Dict, Optional

from vnstat_dashboard.utils.timestamps import to_instant


KIB_UNITS = ["KiB/s", "MiB/s", "GiB/s", "TiB/s"]

# Minutes since the last report
WARNING_AFTER_MINUTES = 5
OFFLINE_AFTER_MINUTES = 15


def kib_to_mbps(kib_per_second: Optional[float]) -> float:
    """Convert KiB/s to megabits per second."""
    if not kib_per_second:
        return 0.0
    return (kib_per_second * 8192) / 1_000_000


def format_kib(kib: Optional[float], decimals: int = 2) -> str:
    """
    Format a KiB/s rate with a human readable unit.

    Args:
        kib: Rate in KiB/s
        decimals: Decimal places to keep

    Returns:
        Text such as "512.00 B/s", "3.5 MiB/s" or "0 KiB/s"
    """
    if kib is None or isinstance(kib, bool) or not math.isfinite(kib) or kib <= 0:
        return "0 KiB/s"

    places = max(decimals, 0)

    if kib < 1:
        return f"{kib * 1024:.{places}f} B/s"

    index = min(int(math.log(kib, 1024)), len(KIB_UNITS) - 1)
    value = round(kib / (1024 ** index), places)
    return f"{value:g} {KIB_UNITS[index]}"


def describe_last_seen(latest: Any, now: datetime) -> Dict[str, str]:
    """
    Describe how recently a server reported.

    Args:
        latest: Timestamp of the server's most recent sample (any raw form)
        now: Reference time

    Returns:
        Dictionary with "text" and "status" (online, warning or offline)
    """
    instant = to_instant(latest)
    if instant is None:
        return {"text": "Unknown", "status": "offline"}

    diff_minutes = math.floor((now - instant).total_seconds() / 60)

    if diff_minutes > OFFLINE_AFTER_MINUTES:
        hours, minutes = divmod(diff_minutes, 60)
        return {"text": f"Offline ({hours}h {minutes}m ago)", "status": "offline"}
    if diff_minutes > WARNING_AFTER_MINUTES:
        return {"text": f"{diff_minutes}m ago", "status": "warning"}
    if diff_minutes < 1:
        return {"text": "Just now", "status": "online"}
    return {"text": f"{diff_minutes}m ago", "status": "online"}
