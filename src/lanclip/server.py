#!/usr/bin/env python3
"""Server mode implementation for lanclip.

The server runs on the machine whose clipboard is shared and listens on a
TCP port for devices on the LAN. While running it:
- Samples the host clipboard and offers changes to the sync engine
- Accepts any number of device connections and serves their events
- Fans accepted clipboard values out to every auto-sync device
- Drops stale conflict window entries on a maintenance tick

SIGINT and SIGTERM stop the server: the listener closes, every device gets
a goodbye, and the host clipboard is released.

Usage:
    lanclip --server [--host HOST] [--port PORT] [--headless]
"""

from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import suppress

from lanclip.clipboard import open_clipboard
from lanclip.constants import DEFAULT_HOST, DEFAULT_PORT, MAINTENANCE_INTERVAL, POLL_INTERVAL_MS
from lanclip.server_handler import handle_device
from lanclip.server_socket import print_startup_message
from lanclip.server_state import ServerState, build_server_state
from lanclip.sync_engine import SyncEngine

logger = logging.getLogger(__name__)


async def run_maintenance(engine: SyncEngine, interval: float = MAINTENANCE_INTERVAL) -> None:
    """Prune the conflict window every interval seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        removed = engine.prune_conflicts()
        if removed:
            logger.debug("Pruned %d conflict entries", removed)


async def serve(
    state: ServerState,
    host: str,
    port: int,
    shutdown_requested: asyncio.Event,
) -> None:
    """Serve devices until shutdown_requested is set.

    Args:
        state: The assembled relay components.
        host: Address to bind.
        port: TCP port to bind; 0 picks a free port.
        shutdown_requested: Event that stops the server when set.
    """
    server = await asyncio.start_server(
        lambda r, w: handle_device(state, r, w),
        host=host,
        port=port,
    )
    bound_port = server.sockets[0].getsockname()[1]
    print_startup_message(host, bound_port)
    logger.info("Relay listening on %s:%d", host, bound_port)

    state.poller.start()
    maintenance = asyncio.create_task(run_maintenance(state.engine))
    try:
        await shutdown_requested.wait()
    finally:
        logger.info("Shutting down")
        server.close()
        maintenance.cancel()
        with suppress(asyncio.CancelledError):
            await maintenance
        await state.poller.stop()
        state.engine.close()
        await state.broadcaster.close()
        await server.wait_closed()


async def run_server(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    poll_interval: float = POLL_INTERVAL_MS / 1000,
    headless: bool = False,
) -> None:
    """Run the relay server until SIGINT or SIGTERM.

    Args:
        host: Address to bind.
        port: TCP port to bind.
        poll_interval: Seconds between host clipboard samples.
        headless: Use a process-local clipboard instead of X11.
    """
    clipboard = open_clipboard(headless)
    state = build_server_state(clipboard, poll_interval)

    # Register signal handlers for clean shutdown
    shutdown_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, shutdown_requested.set)
    loop.add_signal_handler(signal.SIGTERM, shutdown_requested.set)

    try:
        await serve(state, host, port, shutdown_requested)
    finally:
        clipboard.close()
