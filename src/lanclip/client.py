#!/usr/bin/env python3
"""Client mode implementation for lanclip.

This module provides the main entry point for client mode, which turns
the local machine into a device of a lanclip relay on the LAN. The client
samples the local clipboard and sends changes to the relay, while also
writing clipboard updates received from the relay.

See client_retry.py for connection handling.
"""

from __future__ import annotations

import asyncio
import signal

from lanclip.client_retry import run_client_connection
from lanclip.client_state import ClientState
from lanclip.clipboard import open_clipboard
from lanclip.constants import DEFAULT_PORT, POLL_INTERVAL_MS


async def run_client(
    host: str,
    port: int = DEFAULT_PORT,
    name: str | None = None,
    device_type: str = "desktop",
    poll_interval: float = POLL_INTERVAL_MS / 1000,
    headless: bool = False,
) -> None:
    """Run client mode connecting to a lanclip relay.

    Opens the local clipboard, then keeps a session with the relay,
    reconnecting on failures, until SIGINT or SIGTERM.

    Args:
        host: Relay host name or address.
        port: Relay TCP port.
        name: Device name shown to other devices.
        device_type: Device type sent on registration.
        poll_interval: Seconds between local clipboard samples.
        headless: Use a process-local clipboard instead of X11.
    """
    clipboard = open_clipboard(headless)
    state = ClientState(
        clipboard=clipboard,
        name=name,
        device_type=device_type,
        poll_interval=poll_interval,
    )

    # Register signal handlers for clean shutdown
    shutdown_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, shutdown_requested.set)
    loop.add_signal_handler(signal.SIGTERM, shutdown_requested.set)

    try:
        await run_client_connection(host, port, state, shutdown_requested)
    finally:
        clipboard.close()
