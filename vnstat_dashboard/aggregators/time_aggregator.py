"""
VnstatDashboard - Time Aggregator

Buckets irregularly sampled throughput data into fixed-size, time-aligned
series for the dashboard charts.
Organized per chart type into focused classes:
- SeriesAggregator: one server, averaged rx/tx per bucket
- CombinedAggregator: all servers merged per bucket
- RealtimeAggregator: dense 15-minute / 30-second live window
- TimeAggregator: facade sharing one AggregationConfig

All aggregators are pure: inputs are never mutated and "now" is always
passed in by the caller.
"""

import logging
import math
import statistics
from collections import defaultdict
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Dict, Hashable, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from vnstat_dashboard.aggregators.time_windows import (
    get_bucket_function,
    get_cutoff,
    get_target_points,
    get_window_spec,
    standardize_timestamp
)
from vnstat_dashboard.models.samples import CombinedPoint, RealtimePoint, Sample, SeriesPoint
from vnstat_dashboard.utils.config import AggregationConfig
from vnstat_dashboard.utils.timestamps import EPOCH, resolve_timezone


logger = logging.getLogger(__name__)

REALTIME_WINDOW = timedelta(minutes=15)
REALTIME_BUCKET = timedelta(seconds=30)
REALTIME_BUCKET_COUNT = REALTIME_WINDOW // REALTIME_BUCKET

SampleArray = Optional[Iterable[Any]]
PerServerSamples = Union[Mapping[Hashable, SampleArray], Sequence[SampleArray]]


class BucketCalculator:
    """
    Helper class for shared bucket operations.

    Provides validation and arithmetic used by all aggregators.
    """

    @staticmethod
    def require_now(now: Any) -> datetime:
        """
        Validate the caller-supplied reference time.

        Raises:
            TypeError: If now is missing or not a datetime
        """
        if not isinstance(now, datetime):
            raise TypeError(f"now must be a datetime, got {type(now).__name__}")
        if now.tzinfo is None:
            return now.replace(tzinfo=timezone.utc)
        return now

    @staticmethod
    def mean(values: List[float]) -> float:
        """Exact arithmetic mean; 0.0 for an empty list."""
        if not values:
            return 0.0
        return float(statistics.mean(values))

    @staticmethod
    def keep_most_recent(points: List[Any], target_points: int) -> List[Any]:
        """Keep only the trailing target_points of an ascending series."""
        if len(points) > target_points:
            return points[-target_points:]
        return points

    @staticmethod
    def iter_server_arrays(per_server_samples: PerServerSamples) -> Iterator[Tuple[Hashable, Iterable[Any]]]:
        """
        Yield (server key, samples) pairs.

        Mappings are keyed by server name; plain sequences are keyed by
        position. Missing arrays are skipped.
        """
        if per_server_samples is None:
            return
        if isinstance(per_server_samples, Mapping):
            items: Iterable[Tuple[Hashable, SampleArray]] = per_server_samples.items()
        else:
            items = enumerate(per_server_samples)

        for server_key, samples in items:
            if samples is None:
                continue
            yield server_key, samples


class WindowBucketer:
    """
    Assigns samples to bucket keys for one aggregation call.

    Bucket keys are UTC instants so that keys stay unique across DST
    folds; callers convert them back to the display zone for output.
    """

    def __init__(
        self,
        window_label: Optional[str],
        now: Any,
        timezone_name: str,
        standardization_intervals: Optional[Dict[str, int]] = None
    ):
        """
        Initialize the bucketer.

        Args:
            window_label: Look-back window label (unknown labels use 1h)
            now: Reference time for the range cutoff
            timezone_name: Display timezone (IANA identifier or "UTC")
            standardization_intervals: Per-label clock-skew snap in seconds
        """
        self.spec = get_window_spec(window_label)
        self.now = BucketCalculator.require_now(now)
        self.timezone_name = timezone_name
        self.zone: tzinfo = resolve_timezone(timezone_name)
        self.cutoff = get_cutoff(self.spec.label, self.now)
        self.target_points = get_target_points(self.spec.label)
        self.intervals = standardization_intervals
        self._bucket_function = get_bucket_function(self.spec.label)

    def place(self, record: Any, server_name: Optional[str] = None) -> Optional[Tuple[datetime, Sample]]:
        """
        Validate a record and compute its bucket key.

        Returns:
            (UTC bucket key, sample), or None if the record is malformed
            or older than the window cutoff
        """
        sample = Sample.from_record(record, self.timezone_name, server_name)
        if sample is None or sample.timestamp < self.cutoff:
            return None

        standardized = standardize_timestamp(sample.timestamp, self.spec.label, self.intervals)
        bucket_start = self._bucket_function(standardized)
        return bucket_start.astimezone(timezone.utc), sample

    def to_display(self, bucket_key: datetime) -> datetime:
        """Express a UTC bucket key in the display timezone."""
        return bucket_key.astimezone(self.zone)


class SeriesAggregator:
    """
    Handles single-server chart series.

    Every bucket that received a sample yields one averaged point.
    """

    def __init__(self, config: Optional[AggregationConfig] = None):
        """
        Initialize the series aggregator.

        Args:
            config: Aggregation configuration (creates default if None)
        """
        self.config = config or AggregationConfig()
        logger.debug("SeriesAggregator initialized")

    def aggregate(
        self,
        samples: SampleArray,
        window_label: Optional[str],
        now: datetime,
        timezone_name: Optional[str] = None
    ) -> List[SeriesPoint]:
        """
        Aggregate one server's raw samples into averaged buckets.

        Args:
            samples: Raw API records or Sample instances
            window_label: Look-back window ("1h", "6h", "12h", "1d", "3d", "1w")
            now: Reference time for the range cutoff
            timezone_name: Display timezone (defaults to the configured one)

        Returns:
            Ascending list of at most target_points SeriesPoint
        """
        bucketer = WindowBucketer(
            window_label,
            now,
            timezone_name or self.config.display_timezone,
            self.config.standardization_intervals
        )

        rx_buckets: Dict[datetime, List[float]] = defaultdict(list)
        tx_buckets: Dict[datetime, List[float]] = defaultdict(list)
        skipped = 0

        for record in samples or []:
            placed = bucketer.place(record)
            if placed is None:
                skipped += 1
                continue
            bucket_key, sample = placed
            rx_buckets[bucket_key].append(sample.rx_rate)
            tx_buckets[bucket_key].append(sample.tx_rate)

        if skipped:
            logger.debug(f"Skipped {skipped} malformed or out-of-range samples ({bucketer.spec.label})")

        points = [
            SeriesPoint(
                timestamp=bucketer.to_display(bucket_key),
                rx_rate=BucketCalculator.mean(rx_buckets[bucket_key]),
                tx_rate=BucketCalculator.mean(tx_buckets[bucket_key]),
                data_points=len(rx_buckets[bucket_key])
            )
            for bucket_key in sorted(rx_buckets)
        ]

        return BucketCalculator.keep_most_recent(points, bucketer.target_points)


class CombinedAggregator:
    """
    Handles the combined multi-server chart series.

    Each bucket averages every server independently, then sums the
    per-server means so frequently reporting servers carry no extra weight.
    """

    def __init__(self, config: Optional[AggregationConfig] = None):
        """
        Initialize the combined aggregator.

        Args:
            config: Aggregation configuration (creates default if None)
        """
        self.config = config or AggregationConfig()
        logger.debug("CombinedAggregator initialized")

    def combine(
        self,
        per_server_samples: PerServerSamples,
        window_label: Optional[str],
        now: datetime,
        timezone_name: Optional[str] = None
    ) -> List[CombinedPoint]:
        """
        Merge several servers' samples into shared time buckets.

        Args:
            per_server_samples: Mapping of server name to samples, or a
                sequence with one sample array per server
            window_label: Look-back window label
            now: Reference time for the range cutoff
            timezone_name: Display timezone (defaults to the configured one)

        Returns:
            Ascending list of at most target_points CombinedPoint
        """
        bucketer = WindowBucketer(
            window_label,
            now,
            timezone_name or self.config.display_timezone,
            self.config.standardization_intervals
        )

        # bucket key -> server key -> (rx values, tx values)
        buckets: Dict[datetime, Dict[Hashable, Tuple[List[float], List[float]]]] = defaultdict(dict)
        skipped = 0

        for server_key, samples in BucketCalculator.iter_server_arrays(per_server_samples):
            server_name = server_key if isinstance(server_key, str) else None
            for record in samples:
                placed = bucketer.place(record, server_name)
                if placed is None:
                    skipped += 1
                    continue
                bucket_key, sample = placed
                rx_values, tx_values = buckets[bucket_key].setdefault(server_key, ([], []))
                rx_values.append(sample.rx_rate)
                tx_values.append(sample.tx_rate)

        if skipped:
            logger.debug(f"Skipped {skipped} malformed or out-of-range samples ({bucketer.spec.label})")

        points = []
        for bucket_key in sorted(buckets):
            point = self._combine_bucket(bucketer.to_display(bucket_key), buckets[bucket_key])
            if point is not None:
                points.append(point)

        return BucketCalculator.keep_most_recent(points, bucketer.target_points)

    def _combine_bucket(
        self,
        timestamp: datetime,
        servers: Dict[Hashable, Tuple[List[float], List[float]]]
    ) -> Optional[CombinedPoint]:
        """Sum per-server means; None when no server contributed."""
        rx_means = []
        tx_means = []
        data_points = 0

        for rx_values, tx_values in servers.values():
            if not rx_values or not tx_values:
                continue
            rx_means.append(BucketCalculator.mean(rx_values))
            tx_means.append(BucketCalculator.mean(tx_values))
            data_points += len(rx_values)

        if not rx_means:
            return None

        return CombinedPoint(
            timestamp=timestamp,
            total_rx=math.fsum(rx_means),
            total_tx=math.fsum(tx_means),
            server_count=len(rx_means),
            data_points=data_points
        )


class RealtimeAggregator:
    """
    Handles the live throughput chart.

    Fixed 15-minute window of 30-second buckets, pre-created so the series
    is dense even when a server stops reporting.
    """

    def __init__(self, config: Optional[AggregationConfig] = None):
        """
        Initialize the realtime aggregator.

        Args:
            config: Aggregation configuration (creates default if None)
        """
        self.config = config or AggregationConfig()
        logger.debug("RealtimeAggregator initialized")

    @staticmethod
    def _slot(instant: datetime) -> int:
        """Epoch-aligned 30-second slot number of an instant."""
        return (instant - EPOCH) // REALTIME_BUCKET

    def aggregate_realtime(
        self,
        per_server_samples: PerServerSamples,
        timezone_name: Optional[str],
        now: datetime
    ) -> Dict[Hashable, List[RealtimePoint]]:
        """
        Build the dense live series for each server.

        Args:
            per_server_samples: Mapping of server name to samples, or a
                sequence with one sample array per server
            timezone_name: Display timezone (None uses the configured one)
            now: Reference time; buckets cover [now - 15m, now)

        Returns:
            Mapping of server key to exactly 30 ascending RealtimePoint
        """
        now = BucketCalculator.require_now(now)
        timezone_name = timezone_name or self.config.display_timezone
        zone = resolve_timezone(timezone_name)

        start = now - REALTIME_WINDOW
        first_slot = self._slot(start)
        slots = [first_slot + offset for offset in range(REALTIME_BUCKET_COUNT)]

        series: Dict[Hashable, List[RealtimePoint]] = {}
        for server_key, samples in BucketCalculator.iter_server_arrays(per_server_samples):
            server_name = server_key if isinstance(server_key, str) else None
            series[server_key] = self._aggregate_server(
                samples, server_name, timezone_name, zone, start, slots
            )

        return series

    def _aggregate_server(
        self,
        samples: Iterable[Any],
        server_name: Optional[str],
        timezone_name: str,
        zone: tzinfo,
        start: datetime,
        slots: List[int]
    ) -> List[RealtimePoint]:
        """Fill the pre-created slots with one server's samples."""
        buckets: Dict[int, Tuple[List[float], List[float]]] = {slot: ([], []) for slot in slots}

        for record in samples:
            sample = Sample.from_record(record, timezone_name, server_name)
            if sample is None or sample.timestamp < start:
                continue
            bucket = buckets.get(self._slot(sample.timestamp))
            if bucket is None:
                continue
            bucket[0].append(sample.rx_rate)
            bucket[1].append(sample.tx_rate)

        points = []
        for slot in slots:
            rx_values, tx_values = buckets[slot]
            points.append(RealtimePoint(
                timestamp=(EPOCH + slot * REALTIME_BUCKET).astimezone(zone),
                total_throughput=BucketCalculator.mean(rx_values) + BucketCalculator.mean(tx_values),
                data_points=len(rx_values)
            ))
        return points


class TimeAggregator:
    """
    Facade class for chart aggregation operations.

    Provides unified interface to SeriesAggregator, CombinedAggregator
    and RealtimeAggregator.
    """

    def __init__(self, config: Optional[AggregationConfig] = None):
        """
        Initialize the time aggregator facade.

        Args:
            config: Aggregation configuration (creates default if None)
        """
        self.config = config or AggregationConfig()
        self.series = SeriesAggregator(self.config)
        self.combined = CombinedAggregator(self.config)
        self.realtime = RealtimeAggregator(self.config)
        logger.debug("TimeAggregator initialized")

    def aggregate(
        self,
        samples: SampleArray,
        window_label: Optional[str],
        now: datetime,
        timezone_name: Optional[str] = None
    ) -> List[SeriesPoint]:
        """Aggregate one server's samples into averaged buckets."""
        return self.series.aggregate(samples, window_label, now, timezone_name)

    def combine(
        self,
        per_server_samples: PerServerSamples,
        window_label: Optional[str],
        now: datetime,
        timezone_name: Optional[str] = None
    ) -> List[CombinedPoint]:
        """Merge several servers' samples into combined buckets."""
        return self.combined.combine(per_server_samples, window_label, now, timezone_name)

    def aggregate_realtime(
        self,
        per_server_samples: PerServerSamples,
        timezone_name: Optional[str],
        now: datetime
    ) -> Dict[Hashable, List[RealtimePoint]]:
        """Build the dense 15-minute live series per server."""
        return self.realtime.aggregate_realtime(per_server_samples, timezone_name, now)
