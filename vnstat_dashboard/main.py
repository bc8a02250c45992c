"""
VnstatDashboard - Main Entry Point

Command line access to the chart series: fetches raw history from the
backend, aggregates it and prints the result as JSON.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from vnstat_dashboard.aggregators.time_aggregator import TimeAggregator
from vnstat_dashboard.aggregators.time_windows import WINDOWS
from vnstat_dashboard.api.async_vnstat_client import ApiRequestError, AsyncVnstatClient
from vnstat_dashboard.dashboard.data_provider import ThroughputDataProvider
from vnstat_dashboard.utils.config import Config
from vnstat_dashboard.utils.logging_config import setup_logging


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed argument namespace
    """
    parser = argparse.ArgumentParser(
        description="VnstatDashboard - Network throughput chart series",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One server over the last 6 hours
  python -m vnstat_dashboard.main --server web-01 --range 6h

  # All servers combined over the last week, Berlin time
  python -m vnstat_dashboard.main --combined --range 1w --timezone Europe/Berlin

  # Live 15-minute view
  python -m vnstat_dashboard.main --realtime
        """
    )

    mode_group = parser.add_mutually_exclusive_group(required=True)
    mode_group.add_argument(
        "--server",
        help="Chart a single server by name"
    )
    mode_group.add_argument(
        "--combined",
        action="store_true",
        help="Chart all servers combined"
    )
    mode_group.add_argument(
        "--realtime",
        action="store_true",
        help="Chart the last 15 minutes per server"
    )
    mode_group.add_argument(
        "--overview",
        action="store_true",
        help="Show the server list and backend totals"
    )

    parser.add_argument(
        "--range",
        dest="window",
        choices=sorted(WINDOWS),
        default="1h",
        help="Look-back window (default: 1h)"
    )
    parser.add_argument(
        "--timezone",
        help="Display timezone (IANA name); overrides DISPLAY_TIMEZONE"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser.parse_args(argv)


async def run(args: argparse.Namespace, config: Config, now: datetime) -> Dict[str, Any]:
    """
    Execute the requested mode.

    Args:
        args: Parsed arguments
        config: Application configuration
        now: Reference time shared by every aggregation in this run

    Returns:
        JSON-serializable result
    """
    aggregator = TimeAggregator(config.aggregation)

    async with AsyncVnstatClient(config.api, config.operational) as client:
        provider = ThroughputDataProvider(client, aggregator, args.timezone)

        if args.server:
            return await provider.get_server_series(args.server, args.window, now)

        if args.overview:
            return await provider.get_overview(args.window, now)

        servers = await client.get_servers(args.window)
        server_names = [server["server_name"] for server in servers if server.get("server_name")]

        if args.combined:
            return await provider.get_combined_series(server_names, args.window, now)
        return await provider.get_realtime_series(server_names, now)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for VnstatDashboard.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    args = parse_arguments(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO

    try:
        config = Config()
    except ValueError as error:
        setup_logging(level=log_level, log_dir=None)
        logging.getLogger(__name__).error(f"[ERROR] Failed to load configuration: {error}")
        return 1

    setup_logging(level=log_level, log_dir=config.log_dir)
    logger = logging.getLogger(__name__)

    now = datetime.now(timezone.utc)
    logger.info(f"[...] VnstatDashboard run at {now.isoformat()}")

    try:
        result = asyncio.run(run(args, config, now))

    except KeyboardInterrupt:
        logger.warning("[WARN] Operation interrupted by user")
        return 130

    except ApiRequestError as error:
        logger.error(f"[ERROR] {error}")
        return 1

    except ValueError as error:
        logger.error(f"[ERROR] Invalid option: {error}")
        return 2

    print(json.dumps(result, indent=2, default=str))
    logger.info("[DONE] VnstatDashboard - Complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
