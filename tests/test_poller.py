#!/usr/bin/env python3
"""Unit tests for LocalPoller."""
import asyncio

import pytest

from lanclip.clipboard_io import MemoryClipboard
from lanclip.constants import SOURCE_LOCAL
from lanclip.devices import DeviceRegistry
from lanclip.poller import LocalPoller, validate_interval
from lanclip.sync_engine import SyncEngine
from lanclip.sync_types import ClipboardUpdate, SyncOutcome

from conftest import FakeClock, RecordingBroadcaster, SlowClipboard


@pytest.fixture
def poller(engine: SyncEngine, clipboard: MemoryClipboard) -> LocalPoller:
    return LocalPoller(engine, clipboard, interval=0.05)


@pytest.fixture
def devices(registry: DeviceRegistry) -> DeviceRegistry:
    registry.register("D1")
    registry.register("D2")
    return registry


@pytest.mark.asyncio
async def test_written_value_is_not_rebroadcast(
    engine: SyncEngine,
    poller: LocalPoller,
    devices: DeviceRegistry,
    broadcaster: RecordingBroadcaster,
    clipboard: MemoryClipboard,
    clock: FakeClock,
) -> None:
    """Test reading back a value the engine wrote triggers nothing."""
    engine.ingest(ClipboardUpdate(content="X", source_id="D1"))
    await engine.wait_for_writes()
    assert clipboard.content == "X"
    sent_before = len(broadcaster.sent)

    clock.advance(1.0)
    assert await poller.poll_once() is None
    assert len(broadcaster.sent) == sent_before


@pytest.mark.asyncio
async def test_local_change_is_ingested(
    engine: SyncEngine,
    poller: LocalPoller,
    devices: DeviceRegistry,
    broadcaster: RecordingBroadcaster,
    clipboard: MemoryClipboard,
) -> None:
    """Test a new host value is sent to every device as a local update."""
    clipboard.content = "copied on host"
    result = await poller.poll_once()
    assert result.outcome is SyncOutcome.ACCEPTED
    assert set(result.recipients) == {"D1", "D2"}
    assert broadcaster.messages_for("D1")[0]["from"] == SOURCE_LOCAL
    assert clipboard.writes == []


@pytest.mark.asyncio
async def test_stale_host_value_is_not_replayed(
    engine: SyncEngine,
    poller: LocalPoller,
    devices: DeviceRegistry,
    clipboard: MemoryClipboard,
    clock: FakeClock,
) -> None:
    """Test a host value older than a view-only remote update stays put."""
    clipboard.content = "host value"
    assert (await poller.poll_once()).accepted
    clock.advance(1.0)
    engine.ingest(ClipboardUpdate(content="remote", source_id="D1", auto_write=False))
    clock.advance(1.0)
    assert await poller.poll_once() is None
    assert engine.history.front.content == "remote"


@pytest.mark.asyncio
async def test_empty_or_unreadable_clipboard_is_skipped(
    poller: LocalPoller, clipboard: MemoryClipboard
) -> None:
    """Test read errors and empty reads end the tick quietly."""
    assert clipboard.content == ""
    assert await poller.poll_once() is None


@pytest.mark.asyncio
async def test_slow_read_is_skipped(engine: SyncEngine) -> None:
    """Test a read slower than the I/O timeout is abandoned."""
    poller = LocalPoller(engine, SlowClipboard("slow", delay=1.0), interval=0.05)
    assert await poller.poll_once() is None


@pytest.mark.asyncio
async def test_sample_is_discarded_while_write_pending(
    engine: SyncEngine, poller: LocalPoller, devices: DeviceRegistry, clipboard: MemoryClipboard
) -> None:
    """Test the poller does not sample while a host write is in flight."""
    clipboard.content = "old host value"
    engine.ingest(ClipboardUpdate(content="incoming", source_id="D1"))
    assert engine.local_write_pending
    assert await poller.poll_once() is None
    await engine.wait_for_writes()


@pytest.mark.asyncio
async def test_queued_sample_is_offered_again(
    engine: SyncEngine, poller: LocalPoller, devices: DeviceRegistry,
    clipboard: MemoryClipboard, clock: FakeClock,
) -> None:
    """Test a rate limited sample is not remembered as seen."""
    engine.ingest(ClipboardUpdate(content="remote", source_id="D1", auto_write=False))
    clock.advance(0.01)
    clipboard.content = "host"
    assert (await poller.poll_once()).outcome is SyncOutcome.QUEUED
    engine.close()
    clock.advance(1.0)
    assert (await poller.poll_once()).accepted


@pytest.mark.asyncio
async def test_start_stop_restart(poller: LocalPoller, clipboard: MemoryClipboard, engine: SyncEngine) -> None:
    """Test the polling task lifecycle and interval change."""
    clipboard.content = "tick"
    poller.start()
    assert poller.running
    await asyncio.sleep(0.02)
    assert engine.history.front.content == "tick"
    await poller.restart(0.2)
    assert poller.interval == 0.2
    assert poller.running
    await poller.stop()
    assert not poller.running
    await poller.stop()


def test_validate_interval() -> None:
    """Test the 50 ms floor."""
    assert validate_interval(0.05) == 0.05
    with pytest.raises(ValueError):
        validate_interval(0.049)


class BrokenClipboard(MemoryClipboard):
    """Clipboard whose reads fail with an unexpected error."""

    def __init__(self) -> None:
        super().__init__()
        self.reads = 0

    async def read(self) -> str:
        self.reads += 1
        raise RuntimeError("display went away")


@pytest.mark.asyncio
async def test_unexpected_read_error_keeps_polling(engine: SyncEngine) -> None:
    """Test an unexpected exception from read is logged and polling continues."""
    clipboard = BrokenClipboard()
    poller = LocalPoller(engine, clipboard, interval=0.05)
    poller.start()
    await asyncio.sleep(0.2)
    assert poller.running
    assert clipboard.reads >= 2
    await poller.stop()
