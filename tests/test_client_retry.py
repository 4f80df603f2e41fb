#!/usr/bin/env python3
"""Tests for client connection and retry logic."""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from tenacity import stop_after_attempt, wait_none

from lanclip.client_retry import connect_to_server, run_client_connection, run_client_with_retry
from lanclip.client_state import ClientState
from lanclip.clipboard_io import MemoryClipboard
from lanclip.protocol import ProtocolError

# Same retry policy with no waiting, and a bounded number of attempts.
fast_retry = run_client_with_retry.retry_with(wait=wait_none(), stop=stop_after_attempt(3))


@pytest.fixture
def client_state() -> ClientState:
    """Create a ClientState whose hash state holds stale fingerprints."""
    state = ClientState(clipboard=MemoryClipboard())
    state.hash_state.record_sent("abc123")
    state.hash_state.record_received("def456")
    return state


@pytest.fixture
def mock_writer() -> MagicMock:
    writer = MagicMock()
    writer.wait_closed = AsyncMock()
    return writer


@pytest.mark.asyncio
async def test_connect_to_server_success() -> None:
    """Test connect_to_server returns reader/writer on success."""
    mock_reader, mock_writer = AsyncMock(), AsyncMock()
    with patch("asyncio.open_connection", new_callable=AsyncMock) as mock_open:
        mock_open.return_value = (mock_reader, mock_writer)
        assert await connect_to_server("relay.local", 3000) == (mock_reader, mock_writer)
        mock_open.assert_called_once_with("relay.local", 3000)


@pytest.mark.asyncio
async def test_connect_to_server_failure_raises_connection_error() -> None:
    """Test connect_to_server raises ConnectionError on failure."""
    with patch("asyncio.open_connection", new_callable=AsyncMock) as mock_open:
        mock_open.side_effect = OSError("Connection refused")
        with pytest.raises(ConnectionError, match="Connection refused"):
            await connect_to_server("relay.local", 3000)


@pytest.mark.asyncio
async def test_hash_state_cleared_on_each_attempt(
    client_state: ClientState, mock_writer: MagicMock
) -> None:
    """Test a new connection starts with no remembered fingerprints."""
    shutdown = asyncio.Event()
    shutdown.set()
    with patch("lanclip.client_retry.connect_to_server", new_callable=AsyncMock) as mock_conn, \
            patch("lanclip.client_retry.run_device_session", new_callable=AsyncMock):
        mock_conn.return_value = (AsyncMock(), mock_writer)
        await fast_retry("relay.local", 3000, client_state, shutdown)
    assert client_state.hash_state.last_sent_hash is None
    assert client_state.hash_state.last_received_hash is None
    mock_writer.close.assert_called_once()


@pytest.mark.asyncio
async def test_retries_after_connection_failure(
    client_state: ClientState, mock_writer: MagicMock
) -> None:
    """Test a refused connection is retried."""
    shutdown = asyncio.Event()
    shutdown.set()
    with patch("lanclip.client_retry.connect_to_server", new_callable=AsyncMock) as mock_conn, \
            patch("lanclip.client_retry.run_device_session", new_callable=AsyncMock):
        mock_conn.side_effect = [ConnectionError("refused"), (AsyncMock(), mock_writer)]
        await fast_retry("relay.local", 3000, client_state, shutdown)
    assert mock_conn.call_count == 2


@pytest.mark.asyncio
async def test_relay_goodbye_triggers_reconnect(
    client_state: ClientState, mock_writer: MagicMock
) -> None:
    """Test a session the relay ended is retried until attempts run out."""
    from tenacity import RetryError

    with patch("lanclip.client_retry.connect_to_server", new_callable=AsyncMock) as mock_conn, \
            patch("lanclip.client_retry.run_device_session", new_callable=AsyncMock) as mock_session:
        mock_conn.return_value = (AsyncMock(), mock_writer)
        with pytest.raises(RetryError):
            await fast_retry("relay.local", 3000, client_state, asyncio.Event())
    assert mock_session.await_count == 3


@pytest.mark.asyncio
async def test_protocol_error_is_not_retried(
    client_state: ClientState, mock_writer: MagicMock
) -> None:
    with patch("lanclip.client_retry.connect_to_server", new_callable=AsyncMock) as mock_conn, \
            patch("lanclip.client_retry.run_device_session", new_callable=AsyncMock) as mock_session:
        mock_conn.return_value = (AsyncMock(), mock_writer)
        mock_session.side_effect = ProtocolError("bad frame")
        with pytest.raises(ProtocolError):
            await fast_retry("relay.local", 3000, client_state, asyncio.Event())
    assert mock_session.await_count == 1


@pytest.mark.asyncio
async def test_run_client_connection_stops_waiting_on_shutdown(client_state: ClientState) -> None:
    """Test shutdown cancels a client stuck between reconnect attempts."""
    shutdown = asyncio.Event()

    async def never_connects(*args) -> None:
        await asyncio.sleep(60)

    with patch("lanclip.client_retry.run_client_with_retry", never_connects), \
            patch("lanclip.client_retry.SHUTDOWN_GRACE", 0.01):
        task = asyncio.create_task(run_client_connection("relay.local", 3000, client_state, shutdown))
        await asyncio.sleep(0.01)
        shutdown.set()
        await asyncio.wait_for(task, timeout=1)


@pytest.mark.asyncio
async def test_run_client_connection_raises_protocol_error(client_state: ClientState) -> None:
    with patch("lanclip.client_retry.run_client_with_retry", new_callable=AsyncMock) as mock_retry:
        mock_retry.side_effect = ProtocolError("bad frame")
        with pytest.raises(ProtocolError):
            await run_client_connection("relay.local", 3000, client_state, asyncio.Event())
