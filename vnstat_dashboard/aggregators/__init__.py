"""
VnstatDashboard - Aggregators Package

Time-bucketing and averaging of throughput samples for the charts.
"""

from vnstat_dashboard.aggregators.time_aggregator import (
    BucketCalculator,
    WindowBucketer,
    SeriesAggregator,
    CombinedAggregator,
    RealtimeAggregator,
    TimeAggregator,
    REALTIME_BUCKET,
    REALTIME_BUCKET_COUNT,
    REALTIME_WINDOW
)
from vnstat_dashboard.aggregators.time_windows import (
    WINDOWS,
    WindowSpec,
    get_backend_limit,
    get_backend_time_range,
    get_bucket_function,
    get_cutoff,
    get_target_points,
    get_window_spec,
    standardize_timestamp
)
from vnstat_dashboard.utils.timestamps import normalize_timestamp

__all__ = [
    "BucketCalculator",
    "WindowBucketer",
    "SeriesAggregator",
    "CombinedAggregator",
    "RealtimeAggregator",
    "TimeAggregator",
    "REALTIME_BUCKET",
    "REALTIME_BUCKET_COUNT",
    "REALTIME_WINDOW",
    "WINDOWS",
    "WindowSpec",
    "get_backend_limit",
    "get_backend_time_range",
    "get_bucket_function",
    "get_cutoff",
    "get_target_points",
    "get_window_spec",
    "standardize_timestamp",
    "normalize_timestamp"
]
