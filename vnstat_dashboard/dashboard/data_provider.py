"""
VnstatDashboard - Chart Data Provider

Fetches raw history from the API client and shapes aggregated series into
chart-ready structures (Mbps values, one dataset per line).
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from vnstat_dashboard.aggregators.time_aggregator import TimeAggregator
from vnstat_dashboard.aggregators.time_windows import (
    get_backend_limit,
    get_backend_time_range,
    get_window_spec
)
from vnstat_dashboard.api.async_vnstat_client import ApiRequestError, AsyncVnstatClient
from vnstat_dashboard.models.samples import parse_rate
from vnstat_dashboard.utils.formatting import describe_last_seen, format_kib, kib_to_mbps


logger = logging.getLogger(__name__)

REALTIME_FETCH_RANGE = "20m"
REALTIME_FETCH_LIMIT = 240


def _server_row(server: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    """Add display text for the latest rates and last report time."""
    return {
        **server,
        "rx_text": format_kib(parse_rate(server.get("rx_rate"))),
        "tx_text": format_kib(parse_rate(server.get("tx_rate"))),
        "last_seen": describe_last_seen(server.get("latest_time"), now)
    }


def _dataset(label: str, points: List[Any], value_key: str) -> Dict[str, Any]:
    """Build one chart line of {x, y} pairs with y in Mbps."""
    return {
        "label": label,
        "points": [
            {"x": point.timestamp.isoformat(), "y": round(kib_to_mbps(getattr(point, value_key)), 3)}
            for point in points
        ]
    }


class ThroughputDataProvider:
    """
    Data provider for the throughput dashboard charts.

    Pulls raw samples through the API client and hands them to the
    aggregators; the reference time is supplied by the caller.
    """

    def __init__(
        self,
        client: AsyncVnstatClient,
        aggregator: Optional[TimeAggregator] = None,
        timezone_name: Optional[str] = None
    ):
        """
        Initialize the data provider.

        Args:
            client: Async API client used to fetch raw history
            aggregator: Time aggregator (creates default if None)
            timezone_name: Display timezone override (defaults to aggregator config)
        """
        self.client = client
        self.aggregator = aggregator or TimeAggregator()
        self.timezone_name = timezone_name or self.aggregator.config.display_timezone

    async def get_server_series(
        self,
        server_name: str,
        window_label: str,
        now: datetime
    ) -> Dict[str, Any]:
        """
        Build the rx/tx chart for one server.

        Args:
            server_name: Server to chart
            window_label: Look-back window label
            now: Reference time for the range cutoff

        Returns:
            Dictionary with window, timezone, datasets and raw points
        """
        spec = get_window_spec(window_label)
        history = await self.client.get_server_history(
            server_name,
            get_backend_time_range(spec.label),
            get_backend_limit(spec.label)
        )

        points = self.aggregator.aggregate(history, spec.label, now, self.timezone_name)
        logger.info(f"[OK] {server_name}: {len(history)} samples -> {len(points)} points ({spec.label})")

        return {
            "server_name": server_name,
            "window": spec.label,
            "timezone": self.timezone_name,
            "datasets": [
                _dataset(f"{server_name} RX (Mbps)", points, "rx_rate"),
                _dataset(f"{server_name} TX (Mbps)", points, "tx_rate")
            ],
            "points": [point.to_dict() for point in points]
        }

    async def get_combined_series(
        self,
        server_names: Sequence[str],
        window_label: str,
        now: datetime
    ) -> Dict[str, Any]:
        """
        Build the combined rx/tx chart across servers.

        Args:
            server_names: Servers to combine
            window_label: Look-back window label
            now: Reference time for the range cutoff

        Returns:
            Dictionary with window, timezone, datasets and raw points
        """
        spec = get_window_spec(window_label)
        history = await self.client.get_history_for_servers(
            server_names,
            get_backend_time_range(spec.label),
            get_backend_limit(spec.label)
        )

        points = self.aggregator.combine(history, spec.label, now, self.timezone_name)
        logger.info(f"[OK] Combined {len(server_names)} servers -> {len(points)} points ({spec.label})")

        return {
            "window": spec.label,
            "timezone": self.timezone_name,
            "datasets": [
                _dataset("Total RX (Mbps)", points, "total_rx"),
                _dataset("Total TX (Mbps)", points, "total_tx")
            ],
            "points": [point.to_dict() for point in points]
        }

    async def get_realtime_series(
        self,
        server_names: Sequence[str],
        now: datetime
    ) -> Dict[str, Any]:
        """
        Build the live total-throughput chart, one line per server.

        Servers that returned no data at all are left out of the chart.

        Args:
            server_names: Servers to chart
            now: Reference time; the window is the 15 minutes before it

        Returns:
            Dictionary with timezone and datasets
        """
        history = await self.client.get_history_for_servers(
            server_names, REALTIME_FETCH_RANGE, REALTIME_FETCH_LIMIT
        )
        reporting = {name: records for name, records in history.items() if records}

        series = self.aggregator.aggregate_realtime(reporting, self.timezone_name, now)

        return {
            "timezone": self.timezone_name,
            "datasets": [
                _dataset(f"{name} Total (Mbps)", points, "total_throughput")
                for name, points in series.items()
            ]
        }

    async def get_overview(self, window_label: str, now: datetime) -> Dict[str, Any]:
        """
        Get the server list and backend totals together.

        One failing request is tolerated; both failing raises.

        Raises:
            ApiRequestError: If both requests fail
        """
        spec = get_window_spec(window_label)
        servers_result, aggregate_result = await asyncio.gather(
            self.client.get_servers(spec.label),
            self.client.get_aggregate(spec.label),
            return_exceptions=True
        )

        if isinstance(servers_result, BaseException) and isinstance(aggregate_result, BaseException):
            raise ApiRequestError(f"Failed to fetch data: {servers_result}") from servers_result

        if isinstance(servers_result, BaseException):
            logger.warning(f"[WARN] Server list unavailable: {servers_result}")
            servers: List[Dict[str, Any]] = []
        else:
            servers = [_server_row(server, now) for server in servers_result]

        if isinstance(aggregate_result, BaseException):
            logger.warning(f"[WARN] Aggregate totals unavailable: {aggregate_result}")
            aggregate: Dict[str, Any] = {"total_rx": 0, "total_tx": 0, "server_count": 0}
        else:
            aggregate = dict(aggregate_result)

        aggregate["total_rx_text"] = format_kib(parse_rate(aggregate.get("total_rx")))
        aggregate["total_tx_text"] = format_kib(parse_rate(aggregate.get("total_tx")))

        return {"window": spec.label, "servers": servers, "aggregate": aggregate}
