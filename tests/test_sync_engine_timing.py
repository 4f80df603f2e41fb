#!/usr/bin/env python3
"""Unit tests for SyncEngine rate limiting, coalescing and the conflict window."""
import asyncio

import pytest

from lanclip.devices import DeviceRegistry
from lanclip.sync_engine import SyncEngine
from lanclip.sync_types import ClipboardUpdate, IgnoreReason, SyncOutcome

from conftest import TEST_SYNC_INTERVAL, FakeClock, RecordingBroadcaster


@pytest.fixture
def devices(registry: DeviceRegistry) -> DeviceRegistry:
    for device_id in ("D1", "D2", "D3"):
        registry.register(device_id)
    return registry


def update(content: str, source: str = "D1", **kwargs) -> ClipboardUpdate:
    return ClipboardUpdate(content=content, source_id=source, **kwargs)


def history_contents(engine: SyncEngine) -> list[str]:
    return [item.content for item in engine.history.list()]


@pytest.mark.asyncio
async def test_updates_just_past_interval_are_both_accepted(
    engine: SyncEngine, devices: DeviceRegistry, clock: FakeClock, broadcaster: RecordingBroadcaster
) -> None:
    """Test two updates interval + 1 ms apart are each broadcast."""
    assert engine.ingest(update("first")).accepted
    clock.advance(TEST_SYNC_INTERVAL + 0.001)
    assert engine.ingest(update("second")).accepted
    assert [m["content"] for m in broadcaster.messages_for("D2")] == ["first", "second"]


@pytest.mark.asyncio
async def test_update_inside_interval_is_queued(
    engine: SyncEngine, devices: DeviceRegistry, clock: FakeClock, broadcaster: RecordingBroadcaster
) -> None:
    """Test an early update is parked and delivered once the interval ends."""
    engine.ingest(update("first"))
    clock.advance(TEST_SYNC_INTERVAL / 2)
    queued = engine.ingest(update("second", "D2"))
    assert queued.outcome is SyncOutcome.QUEUED
    assert engine.pending_update.content == "second"
    assert len(broadcaster.messages_for("D3")) == 1

    await asyncio.sleep(TEST_SYNC_INTERVAL * 2)
    assert engine.pending_update is None
    assert [m["content"] for m in broadcaster.messages_for("D3")] == ["first", "second"]
    assert broadcaster.messages_for("D2") == [broadcaster.messages_for("D3")[0]]


@pytest.mark.asyncio
async def test_burst_coalesces_to_last_update(
    engine: SyncEngine, devices: DeviceRegistry, clock: FakeClock, broadcaster: RecordingBroadcaster
) -> None:
    """Test only the newest of several early updates is ever delivered."""
    engine.ingest(update("base"))
    clock.advance(0.01)
    assert engine.ingest(update("U1")).outcome is SyncOutcome.QUEUED
    clock.advance(0.01)
    assert engine.ingest(update("U2")).outcome is SyncOutcome.QUEUED

    await asyncio.sleep(TEST_SYNC_INTERVAL * 2)
    assert history_contents(engine) == ["U2", "base"]
    delivered = [m["content"] for m in broadcaster.messages_for("D2")]
    assert delivered == ["base", "U2"]


@pytest.mark.asyncio
async def test_forced_update_bypasses_rate_limit(
    engine: SyncEngine, devices: DeviceRegistry, clock: FakeClock
) -> None:
    """Test a forced update is evaluated immediately and drops the pending one."""
    engine.ingest(update("base"))
    clock.advance(0.01)
    engine.ingest(update("parked"))
    clock.advance(0.01)
    assert engine.ingest(update("forced", "history", forced=True)).accepted
    assert engine.pending_update is None
    await asyncio.sleep(TEST_SYNC_INTERVAL * 2)
    assert history_contents(engine) == ["forced", "base"]


@pytest.mark.asyncio
async def test_duplicate_is_ignored_even_inside_interval(
    engine: SyncEngine, devices: DeviceRegistry, clock: FakeClock
) -> None:
    """Test the held value is ignored rather than queued."""
    engine.ingest(update("same"))
    clock.advance(0.01)
    result = engine.ingest(update("same", "D2"))
    assert result.reason is IgnoreReason.DUPLICATE
    assert engine.pending_update is None


@pytest.mark.asyncio
async def test_ping_pong_inside_conflict_window_is_ignored(
    engine: SyncEngine, devices: DeviceRegistry, clock: FakeClock
) -> None:
    """Test A, B, A within the conflict window drops the second A."""
    engine.ingest(update("A", "D1"))
    clock.advance(0.1)
    engine.ingest(update("B", "D2"))
    clock.advance(0.1)
    result = engine.ingest(update("A", "D3"))
    assert result.outcome is SyncOutcome.IGNORED
    assert result.reason is IgnoreReason.CONFLICT
    assert history_contents(engine) == ["B", "A"]


@pytest.mark.asyncio
async def test_repeat_after_conflict_window_is_accepted(
    engine: SyncEngine, devices: DeviceRegistry, clock: FakeClock
) -> None:
    """Test a value seen more than a window ago is a fresh change."""
    engine.ingest(update("A"))
    clock.advance(0.1)
    engine.ingest(update("B"))
    clock.advance(1.0)
    assert engine.ingest(update("A")).accepted
    assert history_contents(engine) == ["A", "B"]


@pytest.mark.asyncio
async def test_deferred_update_is_not_its_own_conflict(
    engine: SyncEngine, devices: DeviceRegistry, clock: FakeClock
) -> None:
    """Test a parked update is accepted when its timer fires."""
    engine.ingest(update("base"))
    clock.advance(0.01)
    engine.ingest(update("late"))
    await asyncio.sleep(TEST_SYNC_INTERVAL * 2)
    assert engine.last_hash == engine.history.front.hash
    assert engine.history.front.content == "late"


@pytest.mark.asyncio
async def test_prune_conflicts_by_age(
    engine: SyncEngine, devices: DeviceRegistry, clock: FakeClock
) -> None:
    """Test maintenance drops only entries older than the retention."""
    engine.ingest(update("old"))
    clock.advance(4.0)
    engine.ingest(update("recent"))
    clock.advance(2.0)
    assert engine.prune_conflicts() == 1
    assert len(engine.state.recent_hashes) == 1
    assert engine.prune_conflicts(now=clock.now + 10) == 1
    assert engine.state.recent_hashes == {}
