"""
VnstatDashboard - Utilities Package

Configuration, logging, timestamp and formatting helpers.
"""
