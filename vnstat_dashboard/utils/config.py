"""
VnstatDashboard - Configuration Management

This module handles loading and validating configuration from environment variables
and configuration files.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

from vnstat_dashboard.utils.timestamps import UTC_SENTINEL, resolve_timezone


@dataclass
class ApiConfig:
    """Configuration for the dashboard backend API."""
    api_key: str
    base_url: str = "http://127.0.0.1:3000/api"
    timeout_seconds: float = 30.0


@dataclass
class OperationalConfig:
    """Configuration for operational parameters."""
    max_retries: int = 2
    retry_delay: float = 2.0
    retry_backoff: float = 1.5


def default_standardization_intervals() -> Dict[str, int]:
    """Clock-skew standardization interval (seconds) per window label."""
    return {"1h": 5, "6h": 5, "12h": 30, "1d": 30, "3d": 60, "1w": 60}


@dataclass
class AggregationConfig:
    """Configuration for chart aggregation."""
    display_timezone: str = UTC_SENTINEL
    standardization_intervals: Dict[str, int] = field(
        default_factory=default_standardization_intervals
    )

    def __post_init__(self):
        """Validate values that would otherwise fail deep inside aggregation."""
        resolve_timezone(self.display_timezone)
        for label, seconds in self.standardization_intervals.items():
            if not 1 <= seconds <= 60:
                raise ValueError(
                    f"Standardization interval for {label} must be 1-60 seconds, got {seconds}"
                )


@dataclass
class Config:
    """
    Main configuration class that aggregates all configuration sections.

    Loads configuration from environment variables with .env file support.
    """
    api: ApiConfig = field(default_factory=lambda: None)
    operational: OperationalConfig = field(default_factory=OperationalConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)

    # Paths
    log_dir: Path = field(default_factory=lambda: Path("data/logs"))
    env_file: Optional[Path] = field(default_factory=lambda: Path(".env"))

    def __post_init__(self):
        """Load configuration from environment after initialization."""
        # Load .env file if it exists
        if self.env_file is not None and self.env_file.exists():
            load_dotenv(self.env_file)

        self.api = ApiConfig(
            api_key=self._get_required_env("VNSTAT_API_KEY"),
            base_url=os.getenv("VNSTAT_API_URL", "http://127.0.0.1:3000/api"),
            timeout_seconds=float(os.getenv("VNSTAT_API_TIMEOUT", "30"))
        )

        self.operational = OperationalConfig(
            max_retries=int(os.getenv("MAX_RETRIES", "2")),
            retry_delay=float(os.getenv("RETRY_DELAY", "2.0")),
            retry_backoff=float(os.getenv("RETRY_BACKOFF", "1.5"))
        )

        # Short/medium/long windows share a standardization interval
        short = int(os.getenv("STANDARDIZE_SHORT", "5"))
        medium = int(os.getenv("STANDARDIZE_MEDIUM", "30"))
        long = int(os.getenv("STANDARDIZE_LONG", "60"))
        self.aggregation = AggregationConfig(
            display_timezone=os.getenv("DISPLAY_TIMEZONE", UTC_SENTINEL),
            standardization_intervals={
                "1h": short, "6h": short,
                "12h": medium, "1d": medium,
                "3d": long, "1w": long
            }
        )

        self.log_dir = Path(os.getenv("LOG_DIR", str(self.log_dir)))
        self._ensure_directories()

    def _get_required_env(self, key: str) -> str:
        """
        Get a required environment variable.

        Args:
            key: Environment variable name

        Returns:
            Environment variable value

        Raises:
            ValueError: If the environment variable is not set
        """
        value = os.getenv(key)
        if value is None:
            raise ValueError(f"Required environment variable {key} is not set")
        return value

    def _ensure_directories(self) -> None:
        """Create data directories if they don't exist."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
