"""
VnstatDashboard - API modules

This package contains the async client for the dashboard backend.
"""

from vnstat_dashboard.api.async_vnstat_client import (
    ApiRequestError,
    AsyncVnstatConnection,
    AsyncVnstatClient,
    describe_request_error
)

__all__ = [
    "ApiRequestError",
    "AsyncVnstatConnection",
    "AsyncVnstatClient",
    "describe_request_error"
]
