"""
VnstatDashboard - Logging Configuration

This module provides centralized logging configuration for the application.
The CLI writes its JSON result to stdout, so console logging goes to stderr.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional


DEFAULT_LOG_FILE = "dashboard.log"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    log_dir: Optional[Path] = Path("data/logs")
) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional log file name (default: dashboard.log)
        log_dir: Directory for log files; None logs to the console only
            (used before configuration has been loaded)

    Returns:
        Root logger instance
    """
    # Create root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers
    root_logger.handlers.clear()

    # Console handler with simple format, kept off stdout
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_format = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(console_format)
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        # Ensure log directory exists
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / (log_file or DEFAULT_LOG_FILE)

        # File handler with detailed format and rotation
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)  # Skipped-sample counts are logged at debug
        file_format = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        file_handler.setFormatter(file_format)
        root_logger.addHandler(file_handler)

    # Configure specific loggers
    configure_module_loggers(level)

    return root_logger


def configure_module_loggers(default_level: int = logging.INFO) -> None:
    """
    Configure logging levels for specific modules.

    Args:
        default_level: Default logging level for application modules
    """
    # Application modules
    app_modules = [
        "vnstat_dashboard.api",
        "vnstat_dashboard.aggregators",
        "vnstat_dashboard.dashboard",
        "vnstat_dashboard.models",
        "vnstat_dashboard.utils"
    ]

    for module in app_modules:
        logging.getLogger(module).setLevel(default_level)

    # Third-party libraries - reduce noise
    noisy_libraries = [
        "aiohttp",
        "asyncio"
    ]

    for lib in noisy_libraries:
        logging.getLogger(lib).setLevel(logging.WARNING)
