"""
Tests for AsyncVnstatClient

Tests the async dashboard API client implementation with aiohttp.
"""

import asyncio
import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp

from vnstat_dashboard.api.async_vnstat_client import (
    ApiRequestError,
    AsyncVnstatConnection,
    AsyncVnstatClient,
    describe_request_error,
)
from vnstat_dashboard.utils.config import ApiConfig, OperationalConfig


class FakeResponse:
    """Minimal stand-in for an aiohttp response context manager."""

    def __init__(self, payload=None, error=None, json_error=None):
        self.payload = payload
        self.error = error
        self.json_error = json_error

    def raise_for_status(self):
        if self.error is not None:
            raise self.error

    async def json(self):
        if self.json_error is not None:
            raise self.json_error
        return self.payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


def response_error(status: int, message: str) -> aiohttp.ClientResponseError:
    """Helper to build an HTTP status error."""
    return aiohttp.ClientResponseError(
        request_info=MagicMock(), history=(), status=status, message=message
    )


@pytest.fixture
def api_config():
    """Create a test API config."""
    return ApiConfig(
        api_key="test-key",
        base_url="http://dashboard.local:3000/api/",
        timeout_seconds=5.0
    )


@pytest.fixture
def ops_config():
    """Create a test operational config."""
    return OperationalConfig(
        max_retries=3,
        retry_delay=0.0,  # Fast for testing
        retry_backoff=1.5
    )


class TestAsyncVnstatConnection:
    """Tests for AsyncVnstatConnection class."""

    @pytest.fixture
    def connection(self, api_config, ops_config):
        """Create a test connection."""
        return AsyncVnstatConnection(api_config, ops_config)

    def test_init_strips_trailing_slash(self, connection):
        """Test that base URL is normalized."""
        assert connection.base_url == "http://dashboard.local:3000/api"

    def test_init_builds_api_key_header(self, connection):
        """Test that the API key header is set."""
        assert connection.headers["x-api-key"] == "test-key"
        assert connection.headers["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    async def test_get_returns_json(self, connection):
        """Test a successful request returns parsed JSON."""
        session = MagicMock()
        session.get = MagicMock(return_value=FakeResponse(payload=[{"server_name": "a"}]))

        with patch.object(connection, "_ensure_session", new=AsyncMock(return_value=session)):
            result = await connection.execute_get_async("Get servers", "/servers", {"range": "1h"})

        assert result == [{"server_name": "a"}]
        session.get.assert_called_once_with(
            "http://dashboard.local:3000/api/servers", params={"range": "1h"}
        )

    @pytest.mark.asyncio
    async def test_get_retries_then_succeeds(self, connection):
        """Test transient connection errors are retried."""
        session = MagicMock()
        session.get = MagicMock(side_effect=[
            aiohttp.ClientConnectionError("refused"),
            FakeResponse(payload={"ok": True}),
        ])

        with patch.object(connection, "_ensure_session", new=AsyncMock(return_value=session)):
            result = await connection.execute_get_async("Get aggregate", "/aggregate")

        assert result == {"ok": True}
        assert session.get.call_count == 2

    @pytest.mark.asyncio
    async def test_get_raises_after_max_retries(self, connection):
        """Test HTTP errors surface as ApiRequestError after all attempts."""
        session = MagicMock()
        session.get = MagicMock(return_value=FakeResponse(error=response_error(500, "Internal Server Error")))

        with patch.object(connection, "_ensure_session", new=AsyncMock(return_value=session)):
            with pytest.raises(ApiRequestError) as excinfo:
                await connection.execute_get_async("Get servers", "/servers")

        assert session.get.call_count == 3
        assert excinfo.value.status == 500
        assert "Server error (500)" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_backoff_delays(self, connection):
        """Test retry delay grows by the backoff factor."""
        connection.ops_config.retry_delay = 2.0
        session = MagicMock()
        session.get = MagicMock(side_effect=aiohttp.ClientConnectionError("down"))

        with patch.object(connection, "_ensure_session", new=AsyncMock(return_value=session)):
            with patch("vnstat_dashboard.api.async_vnstat_client.asyncio.sleep", new=AsyncMock()) as mock_sleep:
                with pytest.raises(ApiRequestError):
                    await connection.execute_get_async("Get servers", "/servers")

        delays = [call.args[0] for call in mock_sleep.call_args_list]
        assert delays == [2.0, 3.0]

    @pytest.mark.asyncio
    async def test_malformed_json_is_api_error(self, connection):
        """Test an unreadable JSON body becomes ApiRequestError without retrying."""
        session = MagicMock()
        session.get = MagicMock(return_value=FakeResponse(
            json_error=json.JSONDecodeError("Expecting value", "<html>", 0)
        ))

        with patch.object(connection, "_ensure_session", new=AsyncMock(return_value=session)):
            with pytest.raises(ApiRequestError) as excinfo:
                await connection.execute_get_async("Get servers", "/servers")

        assert session.get.call_count == 1
        assert "malformed JSON" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, json.JSONDecodeError)

    @pytest.mark.asyncio
    async def test_close_handles_no_session(self, connection):
        """Test that close() handles no session gracefully."""
        connection.session = None
        await connection.close()  # Should not raise


class TestDescribeRequestError:
    """Tests for error translation."""

    def test_timeout(self):
        """Test timeouts get a timeout message."""
        error = describe_request_error(asyncio.TimeoutError())
        assert "timeout" in str(error).lower()

    def test_connection_error(self):
        """Test connection failures get a network message."""
        error = describe_request_error(aiohttp.ClientConnectionError("refused"))
        assert str(error) == "Network error - unable to connect to server"

    def test_value_error(self):
        """Test JSON decoding failures get an invalid-response message."""
        error = describe_request_error(json.JSONDecodeError("Expecting value", "", 0))
        assert str(error) == "Invalid response - server returned malformed JSON"
        assert error.status is None

    def test_status_error(self):
        """Test HTTP status errors keep the status code."""
        error = describe_request_error(response_error(401, "Unauthorized"))
        assert error.status == 401
        assert str(error) == "Server error (401): Unauthorized"


class TestAsyncVnstatClient:
    """Tests for AsyncVnstatClient endpoint operations."""

    @pytest.fixture
    def client(self, api_config, ops_config):
        """Create a test client."""
        return AsyncVnstatClient(api_config, ops_config)

    @pytest.mark.asyncio
    async def test_get_server_history_quotes_name(self, client):
        """Test server names are URL-encoded into the path."""
        with patch.object(
            client.connection,
            "execute_get_async",
            new_callable=AsyncMock
        ) as mock_get:
            mock_get.return_value = [{"timestamp": "2024-01-01T10:00:00Z"}]

            result = await client.get_server_history("web 01/eu", "75m", 900)

        assert result == [{"timestamp": "2024-01-01T10:00:00Z"}]
        args = mock_get.call_args.args
        assert args[1] == "/servers/web%2001%2Feu/history"
        assert args[2] == {"range": "75m", "limit": 900}

    @pytest.mark.asyncio
    async def test_unexpected_payloads_become_empty(self, client):
        """Test non-list/non-dict payloads are normalized."""
        with patch.object(client.connection, "execute_get_async", new=AsyncMock(return_value=None)):
            assert await client.get_servers("1h") == []
            assert await client.get_aggregate("1h") == {}
            assert await client.get_server_history("a") == []

    @pytest.mark.asyncio
    async def test_history_for_servers_tolerates_failures(self, client):
        """Test one failing server does not block the others."""
        async def fake_history(name, time_range, limit):
            if name == "broken":
                raise ApiRequestError("Network error - unable to connect to server")
            return [{"server_name": name}]

        with patch.object(client, "get_server_history", new=AsyncMock(side_effect=fake_history)):
            result = await client.get_history_for_servers(["a", "broken", "b"], "8h", 600)

        assert result == {
            "a": [{"server_name": "a"}],
            "broken": [],
            "b": [{"server_name": "b"}],
        }

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, client):
        """Test async context manager closes the connection."""
        with patch.object(client.connection, "close", new=AsyncMock()) as mock_close:
            async with client:
                pass
        mock_close.assert_awaited_once()
