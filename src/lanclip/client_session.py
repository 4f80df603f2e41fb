#!/usr/bin/env python3
"""One connected session between a device client and the relay.

A session registers the device, then runs two loops side by side:
- the receive loop applies clipboard updates pushed by the relay
- the poll loop samples the local clipboard and sends changes

The session ends when the relay says goodbye, the connection drops, or
shutdown is requested, in which case the client says goodbye first.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from lanclip.client_constants import SHUTDOWN_GRACE
from lanclip.clipboard_io import ClipboardReadError, ClipboardWriteError
from lanclip.events import register_message, update_message
from lanclip.hashing import compute_hash
from lanclip.protocol import ConnectionClosed, read_message, send_goodbye, send_message

if TYPE_CHECKING:
    from lanclip.client_state import ClientState

logger = logging.getLogger(__name__)


async def run_device_session(
    state: ClientState,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    shutdown_requested: asyncio.Event,
) -> None:
    """Run a session until goodbye, disconnect or shutdown.

    Args:
        state: The device client state.
        reader: The asyncio StreamReader for the relay connection.
        writer: The asyncio StreamWriter for the relay connection.
        shutdown_requested: Event set when the client should stop.

    Raises:
        ConnectionError: On connection loss.
        ProtocolError: On protocol violation from the relay.
    """
    await send_message(writer, register_message(state.name, state.device_type))

    receive_task = asyncio.create_task(receive_loop(state, reader))
    poll_task = asyncio.create_task(poll_loop(state, writer))
    shutdown_task = asyncio.create_task(shutdown_requested.wait())
    tasks = {receive_task, poll_task, shutdown_task}
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            task.cancel()
        _, stuck = await asyncio.wait(tasks, timeout=SHUTDOWN_GRACE)
        if stuck:
            logger.warning("%d session tasks did not stop in time", len(stuck))

    if shutdown_task in done:
        await send_goodbye(writer)
        return
    for task in (receive_task, poll_task):
        if task in done:
            # Propagates the loop's exception, if any
            task.result()


async def receive_loop(state: ClientState, reader: asyncio.StreamReader) -> None:
    """Apply relay events until the relay says goodbye.

    Raises:
        ConnectionError: If the relay closes the stream without a goodbye.
    """
    while True:
        try:
            message = await read_message(reader)
        except ConnectionClosed as e:
            raise ConnectionError("Relay closed the connection") from e
        if message is None:
            logger.info("Relay said goodbye")
            return
        await handle_server_message(state, message)


async def handle_server_message(state: ClientState, message: dict) -> None:
    """Act on one event from the relay.

    Clipboard updates are written to the local clipboard unless they carry
    autoWrite false. The received fingerprint is recorded before the write
    so the poll loop does not send the value back.
    """
    match message.get("type"):
        case "clipboard-update":
            content = message.get("content")
            if not isinstance(content, str) or not content:
                logger.debug("Ignoring clipboard update without text")
                return
            if message.get("autoWrite") is False:
                logger.debug("Clipboard update from %s not written", message.get("from"))
                return
            async with state.io_lock:
                state.hash_state.record_received(compute_hash(content))
                await write_local(state, content)
        case "rejected":
            logger.warning("Relay rejected clipboard content: %s", message.get("reason"))
        case "error":
            logger.warning("Relay error: %s", message.get("message"))
        case "device-list":
            logger.debug("%d devices connected", len(message.get("devices") or []))
        case other:
            logger.debug("Ignoring %s event", other)


async def write_local(state: ClientState, content: str) -> None:
    try:
        async with asyncio.timeout(state.io_timeout):
            await state.clipboard.write(content)
    except ClipboardWriteError as e:
        logger.warning("Failed to write local clipboard: %s", e)
    except TimeoutError:
        logger.warning("Local clipboard write timed out")
    else:
        logger.debug("Local clipboard updated (%d chars)", len(content))


async def poll_loop(state: ClientState, writer: asyncio.StreamWriter) -> None:
    """Sample the local clipboard and send changes to the relay.

    A sample taken while a relay value was being applied is stale and is
    dropped.
    """
    while True:
        received = state.hash_state.last_received_hash
        try:
            async with state.io_lock, asyncio.timeout(state.io_timeout):
                content = await state.clipboard.read()
        except (ClipboardReadError, TimeoutError) as e:
            logger.debug("Clipboard read skipped: %r", e)
        else:
            if state.hash_state.last_received_hash != received:
                logger.debug("Relay update arrived during read, discarding sample")
            else:
                await send_local_change(state, writer, content)
        await asyncio.sleep(state.poll_interval)


async def send_local_change(
    state: ClientState,
    writer: asyncio.StreamWriter,
    content: str,
) -> bool:
    """Send content to the relay unless it is a duplicate or an echo.

    Args:
        state: The device client state.
        writer: The asyncio StreamWriter for the relay connection.
        content: Current local clipboard text.

    Returns:
        True if the content was sent.
    """
    if not content:
        return False
    content_hash = compute_hash(content)
    if not state.hash_state.should_send(content_hash):
        return False
    await send_message(writer, update_message(content, time.time()))
    state.hash_state.record_sent(content_hash)
    logger.debug("Sent local clipboard change (%d chars)", len(content))
    return True
