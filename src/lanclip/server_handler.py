#!/usr/bin/env python3
"""Device connection handler.

Each device connection is served by handle_device(): it assigns the
connection an id, attaches an outbound channel, then reads events until the
device says goodbye, disconnects or breaks the framing. Inbound events are
dispatched by dispatch_event(), one case per event kind.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import suppress
from typing import TYPE_CHECKING, assert_never

from lanclip.broadcaster import BroadcastError
from lanclip.clipboard_io import ClipboardReadError
from lanclip.constants import SOURCE_HISTORY, SOURCE_SERVER
from lanclip.events import (
    Disconnect,
    ForceSync,
    InvalidEvent,
    Ping,
    Register,
    RequestClipboard,
    RequestHistory,
    RequestStatus,
    ToggleAutoSync,
    Update,
    UpdateSettings,
    UseHistoryItem,
    clipboard_update_message,
    decode_event,
    device_list_message,
    error_message,
    history_message,
    pong_message,
    rejected_message,
)
from lanclip.hashing import compute_hash
from lanclip.history import HistoryItemNotFound
from lanclip.protocol import ConnectionClosed, ProtocolError, read_message
from lanclip.settings import apply_settings, server_status
from lanclip.sync_types import ClipboardUpdate, IgnoreReason, SyncOutcome, SyncResult

if TYPE_CHECKING:
    from lanclip.events import InboundEvent
    from lanclip.server_state import ServerState

logger = logging.getLogger(__name__)


def new_device_id() -> str:
    return uuid.uuid4().hex[:12]


async def handle_device(
    state: ServerState,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
) -> None:
    """Serve one device connection until it ends.

    Args:
        state: The relay server state.
        reader: The asyncio StreamReader for the connection.
        writer: The asyncio StreamWriter for the connection.
    """
    device_id = new_device_id()
    logger.info("Device connected: %s from %s", device_id, writer.get_extra_info("peername"))
    state.broadcaster.attach(device_id, writer)

    try:
        while True:
            message = await read_message(reader)
            if message is None:
                logger.debug("Device %s said goodbye", device_id)
                break
            try:
                event = decode_event(message)
            except InvalidEvent as e:
                logger.warning("Invalid event from %s: %s", device_id, e)
                reply(state, device_id, error_message(str(e)))
                continue
            if not await dispatch_event(state, device_id, event):
                break
    except ConnectionClosed:
        logger.debug("Device %s closed the connection", device_id)
    except ProtocolError as e:
        logger.error("Protocol error from %s: %s", device_id, e)
    except ConnectionError as e:
        logger.error("Connection error from %s: %s", device_id, e)
    finally:
        registered = state.registry.unregister(device_id) is not None
        await state.broadcaster.detach(device_id)
        if registered:
            state.broadcaster.send_all(device_list_message(state.registry.devices()))
        writer.close()
        with suppress(OSError):
            await writer.wait_closed()
        logger.info("Device disconnected: %s", device_id)


def reply(state: ServerState, device_id: str, message: dict) -> None:
    """Queue an event for the device that triggered it."""
    try:
        state.broadcaster.send(device_id, message)
    except BroadcastError as e:
        logger.debug("Reply to %s dropped: %s", device_id, e)


async def dispatch_event(state: ServerState, device_id: str, event: InboundEvent) -> bool:
    """Act on one inbound event.

    Args:
        state: The relay server state.
        device_id: Connection id of the sender.
        event: The decoded event.

    Returns:
        False when the connection should be closed, True otherwise.
    """
    match event:
        case Register(name=name, device_type=device_type, auto_sync=auto_sync):
            state.registry.register(device_id, name, device_type, auto_sync)
            state.broadcaster.send_all(device_list_message(state.registry.devices()))
            state.broadcaster.send_all(history_message(state.history.list()))
            current = state.engine.resync_message()
            if current is not None:
                reply(state, device_id, current)
        case Update(content=content, timestamp=timestamp, auto_write=auto_write):
            update = ClipboardUpdate(
                content=content,
                source_id=device_id,
                timestamp=time.time() if timestamp is None else timestamp,
                auto_write=auto_write,
            )
            result = state.engine.ingest(update)
            if result.outcome is SyncOutcome.REJECTED:
                reply(state, device_id, rejected_message(result.reason.value))
        case ToggleAutoSync(enabled=enabled):
            state.registry.set_auto_sync(device_id, enabled)
            state.broadcaster.send_all(device_list_message(state.registry.devices()))
        case RequestHistory():
            reply(state, device_id, history_message(state.history.list()))
        case UseHistoryItem(index=index):
            try:
                item = state.history.use_item(index)
            except HistoryItemNotFound as e:
                reply(state, device_id, error_message(str(e)))
            else:
                result = state.engine.ingest(
                    ClipboardUpdate(content=item.content, source_id=SOURCE_HISTORY, forced=True)
                )
                report_history_result(state, device_id, result)
        case RequestClipboard():
            await send_host_clipboard(state, device_id)
        case ForceSync():
            current = state.engine.resync_message(force=True)
            if current is not None:
                reply(state, device_id, current)
        case UpdateSettings(auto_sync=auto_sync, polling_interval=polling_interval):
            reply(state, device_id, await apply_settings(state, auto_sync, polling_interval))
        case RequestStatus():
            reply(state, device_id, server_status(state))
        case Ping():
            reply(state, device_id, pong_message(time.time()))
        case Disconnect():
            return False
        case _:
            assert_never(event)
    return True


async def send_host_clipboard(state: ServerState, device_id: str) -> None:
    """Send the host clipboard to one device if the content filter allows it."""
    try:
        async with state.engine.io_lock, asyncio.timeout(state.engine.config.io_timeout):
            content = await state.clipboard.read()
    except (ClipboardReadError, TimeoutError) as e:
        logger.warning("Failed to read clipboard for %s: %r", device_id, e)
        reply(state, device_id, error_message("Failed to read clipboard"))
        return
    reason = state.engine.content_filter.check(content)
    if reason is not None:
        logger.info("Host clipboard withheld from %s: %s", device_id, reason.value)
        reply(state, device_id, rejected_message(reason.value))
        return
    message = clipboard_update_message(content, SOURCE_SERVER, time.time(), compute_hash(content))
    reply(state, device_id, message)


def report_history_result(state: ServerState, device_id: str, result: SyncResult) -> None:
    """Tell the requester when a history item did not become the clipboard.

    An item equal to the current value is answered with that value, since
    nothing is broadcast for it.
    """
    match result.outcome:
        case SyncOutcome.ACCEPTED | SyncOutcome.QUEUED:
            return
        case SyncOutcome.REJECTED:
            reply(state, device_id, rejected_message(result.reason.value))
        case SyncOutcome.IGNORED if result.reason is IgnoreReason.DUPLICATE:
            current = state.engine.resync_message()
            if current is not None:
                reply(state, device_id, current)
        case SyncOutcome.IGNORED:
            message = error_message(f"History item not applied: {result.reason.value}")
            reply(state, device_id, message)
