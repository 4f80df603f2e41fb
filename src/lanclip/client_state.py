#!/usr/bin/env python3
"""Device client state.

This module provides the ClientState dataclass that holds everything a
device client needs across reconnects.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from lanclip.clipboard_io import ClipboardIO
from lanclip.constants import CLIPBOARD_IO_TIMEOUT, POLL_INTERVAL_MS
from lanclip.hashing import HashState


@dataclass
class ClientState:
    """State of a device client.

    Attributes:
        clipboard: The device's own clipboard.
        name: Display name sent on registration, or None for the default.
        device_type: Device type sent on registration.
        poll_interval: Seconds between local clipboard samples.
        io_timeout: Seconds a clipboard read or write may take.
        hash_state: Loop prevention fingerprints, cleared on reconnect.
        io_lock: Serializes local clipboard reads with writes from the relay.
    """

    clipboard: ClipboardIO
    name: str | None = None
    device_type: str = "desktop"
    poll_interval: float = POLL_INTERVAL_MS / 1000
    io_timeout: float = CLIPBOARD_IO_TIMEOUT
    hash_state: HashState = field(default_factory=HashState)
    io_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
