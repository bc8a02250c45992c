"""
VnstatDashboard - Sample and Point Models

Data models for raw throughput samples and the bucketed points produced
by the aggregators. Rates are in KiB/s throughout.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from vnstat_dashboard.utils.timestamps import UTC_SENTINEL, normalize_timestamp


TIMESTAMP_DISPLAY_FORMAT = "%b %d, %H:%M:%S"


def parse_rate(value: Any) -> Optional[float]:
    """
    Parse a rate value reported by the API.

    Numeric strings are accepted because SQL DECIMAL columns arrive as
    strings in JSON.

    Returns:
        Non-negative finite float, or None if the value is unusable
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        rate = float(value)
    elif isinstance(value, str):
        try:
            rate = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(rate) or rate < 0:
        return None
    return rate


@dataclass(frozen=True)
class Sample:
    """
    One rx/tx rate measurement reported by an agent.

    Grain: Per server, per report interval (~5 seconds)
    """
    server_name: str
    timestamp: datetime  # timezone-aware
    rx_rate: float
    tx_rate: float

    @classmethod
    def from_record(
        cls,
        record: Any,
        timezone_name: Optional[str] = UTC_SENTINEL,
        server_name: Optional[str] = None
    ) -> Optional["Sample"]:
        """
        Validate a raw API record and build a Sample from it.

        Args:
            record: Mapping with timestamp/rx_rate/tx_rate keys, or a Sample
            timezone_name: Zone the timestamp is re-expressed in
            server_name: Fallback server identifier when the record has none

        Returns:
            Sample, or None when the record is malformed
        """
        if isinstance(record, Sample):
            raw_timestamp = record.timestamp
            raw_rx = record.rx_rate
            raw_tx = record.tx_rate
            name = record.server_name
        elif isinstance(record, Mapping):
            raw_timestamp = record.get("timestamp")
            raw_rx = record.get("rx_rate")
            raw_tx = record.get("tx_rate")
            name = record.get("server_name")
        else:
            return None

        rx_rate = parse_rate(raw_rx)
        tx_rate = parse_rate(raw_tx)
        if rx_rate is None or tx_rate is None:
            return None

        timestamp = normalize_timestamp(raw_timestamp, timezone_name)
        if timestamp is None:
            return None

        return cls(
            server_name=str(name or server_name or ""),
            timestamp=timestamp,
            rx_rate=rx_rate,
            tx_rate=tx_rate
        )


@dataclass(frozen=True)
class SeriesPoint:
    """Averaged rx/tx point for a single server's bucket."""
    timestamp: datetime
    rx_rate: float
    tx_rate: float
    data_points: int

    def to_dict(self) -> dict:
        """Convert to dictionary for chart consumption."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "rx_rate": self.rx_rate,
            "tx_rate": self.tx_rate,
            "data_points": self.data_points,
            "timestamp_formatted": self.timestamp.strftime(TIMESTAMP_DISPLAY_FORMAT)
        }


@dataclass(frozen=True)
class CombinedPoint:
    """
    Multi-server point for one bucket.

    Totals are sums of each contributing server's own bucket mean.
    """
    timestamp: datetime
    total_rx: float
    total_tx: float
    server_count: int
    data_points: int

    def to_dict(self) -> dict:
        """Convert to dictionary for chart consumption."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "total_rx": self.total_rx,
            "total_tx": self.total_tx,
            "server_count": self.server_count,
            "data_points": self.data_points,
            "timestamp_formatted": self.timestamp.strftime(TIMESTAMP_DISPLAY_FORMAT)
        }


@dataclass(frozen=True)
class RealtimePoint:
    """30-second bucket for the live chart: mean(rx) + mean(tx)."""
    timestamp: datetime
    total_throughput: float
    data_points: int

    @property
    def is_empty(self) -> bool:
        """True when no sample landed in this bucket."""
        return self.data_points == 0

    def to_dict(self) -> dict:
        """Convert to dictionary for chart consumption."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "total_throughput": self.total_throughput,
            "data_points": self.data_points,
            "timestamp_formatted": self.timestamp.strftime(TIMESTAMP_DISPLAY_FORMAT)
        }
