"""
VnstatDashboard - Network Throughput Monitoring Dashboard

This package turns per-server rx/tx rate samples reported by vnstat agents
into time-aligned chart series for the throughput dashboard.
"""

__version__ = "1.0.0"
__author__ = "VnstatDashboard Contributors"
