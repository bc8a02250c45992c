"""
VnstatDashboard - Dashboard Package

Chart data shaping for the throughput dashboard.
"""

from vnstat_dashboard.dashboard.data_provider import ThroughputDataProvider

__all__ = [
    "ThroughputDataProvider"
]
