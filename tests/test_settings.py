#!/usr/bin/env python3
"""Tests for runtime settings updates."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from lanclip.settings import apply_settings, current_settings, server_status


@pytest.fixture
def mock_state() -> MagicMock:
    """Create a mock ServerState with an engine and a 100 ms poller."""
    state = MagicMock()
    state.engine.auto_sync_enabled = True
    state.poller.interval = 0.1
    state.poller.restart = AsyncMock()
    return state


@pytest.mark.asyncio
async def test_no_changes_reports_current(mock_state: MagicMock) -> None:
    """Test an empty update changes nothing and reports the settings."""
    assert await apply_settings(mock_state) == {
        "type": "settings", "autoSync": True, "pollingInterval": 100,
    }
    mock_state.engine.set_auto_sync.assert_not_called()
    mock_state.poller.restart.assert_not_called()


@pytest.mark.asyncio
async def test_auto_sync_switch(mock_state: MagicMock) -> None:
    await apply_settings(mock_state, auto_sync=False)
    mock_state.engine.set_auto_sync.assert_called_once_with(False)


@pytest.mark.asyncio
async def test_polling_interval_at_floor_restarts_poller(mock_state: MagicMock) -> None:
    """Test 50 ms is accepted and passed on in seconds."""
    await apply_settings(mock_state, polling_interval=50)
    mock_state.poller.restart.assert_awaited_once_with(0.05)


@pytest.mark.asyncio
async def test_polling_interval_below_floor_is_ignored(mock_state: MagicMock) -> None:
    await apply_settings(mock_state, polling_interval=49)
    mock_state.poller.restart.assert_not_called()


def test_current_settings_rounds_to_milliseconds(mock_state: MagicMock) -> None:
    mock_state.poller.interval = 0.25
    mock_state.engine.auto_sync_enabled = False
    assert current_settings(mock_state) == {
        "type": "settings", "autoSync": False, "pollingInterval": 250,
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("interval", [float("inf"), float("nan")])
async def test_non_finite_polling_interval_is_ignored(mock_state: MagicMock, interval: float) -> None:
    await apply_settings(mock_state, polling_interval=interval)
    mock_state.poller.restart.assert_not_called()


def test_server_status_adds_interval_and_uptime(mock_state: MagicMock) -> None:
    """Test the status reply carries engine stats, polling interval and uptime in ms."""
    mock_state.engine.stats.return_value = {"acceptedUpdates": 3, "totalSyncs": 3}
    mock_state.started_at = 100.0
    with patch("lanclip.settings.time.monotonic", return_value=102.5):
        status = server_status(mock_state)
    assert status == {
        "type": "status",
        "acceptedUpdates": 3,
        "totalSyncs": 3,
        "pollingInterval": 100,
        "uptime": 2500,
    }
