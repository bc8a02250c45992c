"""
VnstatDashboard - Data Models Package

Dataclass models for raw samples and bucketed chart points.
"""

from vnstat_dashboard.models.samples import (
    Sample,
    SeriesPoint,
    CombinedPoint,
    RealtimePoint,
    parse_rate
)

__all__ = [
    "Sample",
    "SeriesPoint",
    "CombinedPoint",
    "RealtimePoint",
    "parse_rate"
]
