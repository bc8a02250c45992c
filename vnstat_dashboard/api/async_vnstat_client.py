"""
VnstatDashboard - Async Dashboard API Client

This module fetches raw throughput samples from the dashboard backend using
aiohttp, fetching several servers' history in parallel.

Split into focused classes:
- AsyncVnstatConnection: Async session management and retry logic
- AsyncVnstatClient: Endpoint operations and parallel history fetches
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import aiohttp

from vnstat_dashboard.utils.config import ApiConfig, OperationalConfig


logger = logging.getLogger(__name__)


class ApiRequestError(Exception):
    """Raised when a backend request fails after all retries."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def describe_request_error(error: Exception) -> ApiRequestError:
    """Translate an aiohttp/asyncio failure into a user-facing ApiRequestError."""
    if isinstance(error, ApiRequestError):
        return error
    if isinstance(error, asyncio.TimeoutError):
        return ApiRequestError("Request timeout - server took too long to respond")
    if isinstance(error, aiohttp.ClientResponseError):
        message = error.message or "Unknown error"
        return ApiRequestError(f"Server error ({error.status}): {message}", status=error.status)
    if isinstance(error, aiohttp.ClientConnectionError):
        return ApiRequestError("Network error - unable to connect to server")
    if isinstance(error, ValueError):
        return ApiRequestError("Invalid response - server returned malformed JSON")
    return ApiRequestError(f"Request failed: {error}")


class AsyncVnstatConnection:
    """
    Manages the async API session lifecycle.

    Responsibilities:
    - Initialize and maintain aiohttp ClientSession
    - Execute GET requests with retry and backoff
    - Translate transport errors into ApiRequestError
    """

    def __init__(self, api_config: ApiConfig, operational_config: OperationalConfig):
        """
        Initialize the async connection manager.

        Args:
            api_config: Backend API configuration (URL, key, timeout)
            operational_config: Operational settings (retries, backoff)
        """
        self.config = api_config
        self.ops_config = operational_config
        self.session: Optional[aiohttp.ClientSession] = None
        self.base_url = api_config.base_url.rstrip("/")

        self.headers = {
            "Content-Type": "application/json",
            "x-api-key": api_config.api_key
        }

        logger.info(f"[INFO] Dashboard API connection configured for {self.base_url}")

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session exists, creating if needed."""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            self.session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=timeout
            )
            logger.debug("Created new aiohttp session")
        return self.session

    async def execute_get_async(
        self,
        operation: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Execute an async GET request with retry logic.

        Args:
            operation: Description of the operation (for logging)
            endpoint: API endpoint path (e.g., /servers)
            params: Optional query parameters

        Returns:
            Parsed JSON response

        Raises:
            ApiRequestError: After the final failed attempt, or at once
                when the body is not valid JSON
        """
        session = await self._ensure_session()
        url = f"{self.base_url}{endpoint}"
        attempts = max(self.ops_config.max_retries, 1)
        delay = self.ops_config.retry_delay
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                async with session.get(url, params=params) as response:
                    response.raise_for_status()
                    return await response.json()

            except (aiohttp.ClientError, asyncio.TimeoutError) as error:
                last_error = error
                logger.warning(
                    f"[WARN] {operation} failed (attempt {attempt}/{attempts}): {error}"
                )
                if attempt < attempts:
                    await asyncio.sleep(delay)
                    delay *= self.ops_config.retry_backoff

            except ValueError as error:
                # Malformed JSON body is not retried
                logger.error(f"[ERROR] {operation} returned an unreadable body: {error}")
                raise describe_request_error(error) from error

        logger.error(f"[ERROR] {operation} failed after {attempts} attempts")
        if last_error is not None:
            raise describe_request_error(last_error) from last_error
        raise ApiRequestError(f"{operation} failed with unknown error")

    async def close(self) -> None:
        """Close the aiohttp session and clean up resources."""
        if self.session and not self.session.closed:
            await self.session.close()
            logger.debug("Closed aiohttp session")
        self.session = None


class AsyncVnstatClient:
    """
    Async client for the dashboard backend endpoints.

    Usage:
        async with AsyncVnstatClient(api_config, ops_config) as client:
            history = await client.get_server_history("web-01", "75m", 900)
    """

    def __init__(self, api_config: ApiConfig, operational_config: OperationalConfig):
        """
        Initialize the async API client.

        Args:
            api_config: Backend API configuration
            operational_config: Operational settings
        """
        self.connection = AsyncVnstatConnection(api_config, operational_config)
        logger.info("[OK] AsyncVnstatClient initialized")

    async def __aenter__(self) -> "AsyncVnstatClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit with cleanup."""
        await self.close()

    async def get_servers(self, time_range: str = "1d") -> List[Dict[str, Any]]:
        """Get all servers with their latest rates."""
        data = await self.connection.execute_get_async(
            f"Get servers ({time_range})", "/servers", {"range": time_range}
        )
        return data if isinstance(data, list) else []

    async def get_aggregate(self, time_range: str = "1d") -> Dict[str, Any]:
        """Get backend totals (total_rx, total_tx, server_count) for a range."""
        data = await self.connection.execute_get_async(
            f"Get aggregate ({time_range})", "/aggregate", {"range": time_range}
        )
        return data if isinstance(data, dict) else {}

    async def get_server_history(
        self,
        server_name: str,
        time_range: str = "1h",
        limit: int = 50
    ) -> List[Dict[str, Any]]:
        """
        Get raw history records for one server.

        Returns:
            List of {server_name, timestamp, rx_rate, tx_rate} records
        """
        endpoint = f"/servers/{quote(server_name, safe='')}/history"
        data = await self.connection.execute_get_async(
            f"Get history for {server_name} ({time_range})",
            endpoint,
            {"range": time_range, "limit": limit}
        )
        return data if isinstance(data, list) else []

    async def get_history_for_servers(
        self,
        server_names: Sequence[str],
        time_range: str,
        limit: int
    ) -> Dict[str, List[Dict[str, Any]]]:
        """
        Fetch history for several servers in parallel.

        A server whose request fails contributes an empty list so the
        remaining servers still chart.

        Returns:
            Mapping of server name to raw history records
        """
        results = await asyncio.gather(
            *(self.get_server_history(name, time_range, limit) for name in server_names),
            return_exceptions=True
        )

        history: Dict[str, List[Dict[str, Any]]] = {}
        for name, result in zip(server_names, results):
            if isinstance(result, BaseException):
                logger.warning(f"[WARN] History fetch for {name} failed: {result}")
                history[name] = []
            else:
                history[name] = result

        logger.debug(f"Fetched history for {len(server_names)} servers ({time_range})")
        return history

    async def close(self) -> None:
        """Close all connections and clean up resources."""
        await self.connection.close()
        logger.debug("AsyncVnstatClient closed")
