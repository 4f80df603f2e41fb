#!/usr/bin/env python3
"""Relay server state.

This module provides the ServerState dataclass that groups the components
shared by every device connection, and build_server_state() which wires
them together.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from lanclip.broadcaster import StreamBroadcaster
from lanclip.clipboard_io import ClipboardIO
from lanclip.constants import POLL_INTERVAL_MS
from lanclip.content_filter import ContentFilter
from lanclip.devices import DeviceRegistry
from lanclip.events import history_message
from lanclip.history import HistoryStore
from lanclip.poller import LocalPoller
from lanclip.sync_engine import EngineConfig, SyncEngine
from lanclip.sync_types import ClipboardUpdate, SyncResult


@dataclass
class ServerState:
    """Components shared across device connections.

    Attributes:
        engine: The sync engine.
        registry: Connected devices.
        history: Accepted clipboard values.
        broadcaster: Per-device outbound channels.
        poller: Host clipboard poller.
        clipboard: Host clipboard backend.
        started_at: Monotonic time the state was built, for uptime.
    """

    engine: SyncEngine
    registry: DeviceRegistry
    history: HistoryStore
    broadcaster: StreamBroadcaster
    poller: LocalPoller
    clipboard: ClipboardIO
    started_at: float = field(default_factory=time.monotonic)


def build_server_state(
    clipboard: ClipboardIO,
    poll_interval: float = POLL_INTERVAL_MS / 1000,
    config: EngineConfig | None = None,
    content_filter: ContentFilter | None = None,
) -> ServerState:
    """Create and wire the relay components.

    Accepted updates also push the refreshed history to every device.

    Args:
        clipboard: Host clipboard backend.
        poll_interval: Seconds between host clipboard samples.
        config: Engine timing tunables.
        content_filter: Filter to use instead of the default one.

    Returns:
        The assembled ServerState; the poller is not started.
    """
    registry = DeviceRegistry()
    history = HistoryStore()
    broadcaster = StreamBroadcaster()
    engine = SyncEngine(clipboard, broadcaster, registry, history, content_filter, config)

    def broadcast_history(update: ClipboardUpdate, result: SyncResult) -> None:
        broadcaster.send_all(history_message(history.list()))

    engine.on_accepted = broadcast_history
    poller = LocalPoller(engine, clipboard, poll_interval)
    return ServerState(
        engine=engine,
        registry=registry,
        history=history,
        broadcaster=broadcaster,
        poller=poller,
        clipboard=clipboard,
    )
