#!/usr/bin/env python3
"""Pytest fixtures for lanclip tests.

Provides a controllable clock, a broadcaster that records what it was asked
to send, and a sync engine wired to an in-memory clipboard.
"""

import asyncio

import pytest

from lanclip.broadcaster import BroadcastError
from lanclip.clipboard_io import MemoryClipboard
from lanclip.devices import DeviceRegistry
from lanclip.hashing import HashState
from lanclip.history import HistoryStore
from lanclip.sync_engine import EngineConfig, SyncEngine

# Interval used by engine tests, in seconds.
TEST_SYNC_INTERVAL = 0.05


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingBroadcaster:
    """Broadcaster that keeps every message instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, dict]] = []
        self.failing: set[str] = set()

    def send(self, device_id: str, message: dict) -> None:
        if device_id in self.failing:
            raise BroadcastError(f"Send queue full for {device_id}")
        self.sent.append((device_id, message))

    def messages_for(self, device_id: str, kind: str = "clipboard-update") -> list[dict]:
        return [m for d, m in self.sent if d == device_id and m["type"] == kind]


class SlowClipboard(MemoryClipboard):
    """MemoryClipboard whose calls take longer than the engine allows."""

    def __init__(self, content: str = "", delay: float = 1.0) -> None:
        super().__init__(content)
        self.delay = delay

    async def read(self) -> str:
        await asyncio.sleep(self.delay)
        return await super().read()

    async def write(self, text: str) -> None:
        await asyncio.sleep(self.delay)
        await super().write(text)


@pytest.fixture
def hash_state() -> HashState:
    """Create a fresh HashState instance for testing."""
    return HashState()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def registry() -> DeviceRegistry:
    return DeviceRegistry()


@pytest.fixture
def clipboard() -> MemoryClipboard:
    return MemoryClipboard()


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig(
        min_sync_interval=TEST_SYNC_INTERVAL,
        conflict_window=1.0,
        conflict_retention=5.0,
        io_timeout=0.2,
    )


@pytest.fixture
def engine(
    clipboard: MemoryClipboard,
    broadcaster: RecordingBroadcaster,
    registry: DeviceRegistry,
    engine_config: EngineConfig,
    clock: FakeClock,
) -> SyncEngine:
    """Create a SyncEngine driven by the fake clock."""
    return SyncEngine(
        clipboard,
        broadcaster,
        registry,
        history=HistoryStore(),
        config=engine_config,
        clock=clock,
    )
