#!/usr/bin/env python3
"""Reconnecting device sessions.

A device keeps one session with the relay at a time. Whenever a session
is lost, tenacity waits with exponential backoff (1 s doubling up to
60 s) and connects again until the client is asked to stop.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

from tenacity import retry, retry_if_exception_type, stop_never, wait_exponential

from lanclip.client_constants import INITIAL_WAIT, MAX_WAIT, SHUTDOWN_GRACE, WAIT_MULTIPLIER
from lanclip.client_session import run_device_session
from lanclip.client_state import ClientState

logger = logging.getLogger(__name__)


async def connect_to_server(
    host: str,
    port: int,
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Open a TCP stream to the relay.

    Raises:
        ConnectionError: The relay is unreachable or refused the connection.
    """
    try:
        return await asyncio.open_connection(host, port)
    except OSError as e:
        raise ConnectionError(f"Failed to connect to {host}:{port}: {e}") from e


@retry(
    wait=wait_exponential(
        multiplier=WAIT_MULTIPLIER,
        min=INITIAL_WAIT,
        max=MAX_WAIT,
    ),
    retry=retry_if_exception_type((ConnectionError, OSError)),
    stop=stop_never,
)
async def run_client_with_retry(
    host: str,
    port: int,
    state: ClientState,
    shutdown_requested: asyncio.Event,
) -> None:
    """Run device sessions until shutdown is requested.

    Each attempt starts with empty echo-suppression state. A lost
    connection or a goodbye from the relay raises ConnectionError and is
    retried after the backoff wait; a ProtocolError is not retried.

    Args:
        host: Relay host name or address.
        port: Relay TCP port.
        state: The device client state.
        shutdown_requested: Event set when the client should stop.

    Note:
        Returns only once shutdown has been requested.
    """
    state.hash_state.clear()

    logger.debug("Connecting to relay at %s:%d", host, port)
    try:
        reader, writer = await connect_to_server(host, port)
    except ConnectionError:
        logger.warning("Connection to %s:%d failed, will retry", host, port)
        raise

    logger.info("Connected to relay at %s:%d", host, port)
    try:
        await run_device_session(state, reader, writer, shutdown_requested)
    except (ConnectionError, OSError) as e:
        logger.warning("Connection lost: %s, will retry", e)
        raise
    finally:
        writer.close()
        with suppress(OSError):
            await writer.wait_closed()

    if not shutdown_requested.is_set():
        logger.warning("Relay ended the session, will retry")
        raise ConnectionError("Relay ended the session")


async def run_client_connection(
    host: str,
    port: int,
    state: ClientState,
    shutdown_requested: asyncio.Event,
) -> None:
    """Keep a session with the relay until shutdown is requested.

    A session in progress gets SHUTDOWN_GRACE seconds to say goodbye;
    a pending reconnect wait is cancelled.

    Raises:
        ProtocolError: On protocol violation from the relay.
    """
    retry_task = asyncio.create_task(run_client_with_retry(host, port, state, shutdown_requested))
    shutdown_task = asyncio.create_task(shutdown_requested.wait())
    try:
        done, _ = await asyncio.wait(
            {retry_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if retry_task not in done:
            with suppress(TimeoutError):
                async with asyncio.timeout(SHUTDOWN_GRACE):
                    await asyncio.shield(retry_task)
    finally:
        shutdown_task.cancel()
        if not retry_task.done():
            retry_task.cancel()
            with suppress(asyncio.CancelledError):
                await retry_task
    if not retry_task.cancelled():
        retry_task.result()
