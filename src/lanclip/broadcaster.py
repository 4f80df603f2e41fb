#!/usr/bin/env python3
"""Outbound event delivery to connected devices.

Each device connection gets a DeviceChannel: a bounded queue of encoded
frames and a writer task that drains it onto the stream. send() only
enqueues, so the sync engine never waits on a socket. A device whose queue
overflows or whose stream stalls past the drain timeout is closed; the
other channels are unaffected.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Protocol

from lanclip.constants import SEND_QUEUE_SIZE, SEND_TIMEOUT
from lanclip.protocol import encode_message, send_goodbye

logger = logging.getLogger(__name__)


class BroadcastError(Exception):
    """Raised when an event cannot be queued for a device."""


class Broadcaster(Protocol):
    """Deliver one outbound event to one device."""

    def send(self, device_id: str, message: dict) -> None:
        ...


class DeviceChannel:
    """Queue and writer task for a single device stream.

    Args:
        device_id: Connection id, used in log messages.
        writer: The device's stream writer.
        queue_size: Frames that may wait before the device is dropped.
        send_timeout: Seconds a single drain may take.
    """

    def __init__(
        self,
        device_id: str,
        writer: asyncio.StreamWriter,
        queue_size: int = SEND_QUEUE_SIZE,
        send_timeout: float = SEND_TIMEOUT,
    ) -> None:
        self.device_id = device_id
        self.closed = False
        self._writer = writer
        self._send_timeout = send_timeout
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue(maxsize=queue_size)
        self._task = asyncio.get_running_loop().create_task(self._run())

    def offer(self, frame: bytes) -> None:
        """Queue a frame for delivery.

        Raises:
            BroadcastError: If the channel is closed or its queue is full.
        """
        if self.closed:
            raise BroadcastError(f"Channel to {self.device_id} is closed")
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning("Send queue full for %s, dropping device", self.device_id)
            self._abort()
            raise BroadcastError(f"Send queue full for {self.device_id}") from None

    async def close(self, goodbye: bool = False) -> None:
        """Flush queued frames and stop the writer.

        Args:
            goodbye: Also send a goodbye and close the stream.
        """
        if not self.closed:
            self.closed = True
            with suppress(asyncio.QueueFull):
                self._queue.put_nowait(None)
        elif not self._task.done():
            # Aborted channels drop whatever is still queued
            self._task.cancel()
        _, pending = await asyncio.wait({self._task}, timeout=self._send_timeout)
        if pending:
            logger.debug("Writer for %s did not finish in time", self.device_id)
            self._task.cancel()
        if goodbye and not self._writer.is_closing():
            await send_goodbye(self._writer)
            self._writer.close()

    async def _run(self) -> None:
        while True:
            frame = await self._queue.get()
            if frame is None:
                return
            try:
                self._writer.write(frame)
                async with asyncio.timeout(self._send_timeout):
                    await self._writer.drain()
            except (OSError, TimeoutError) as e:
                logger.warning("Send to %s failed, dropping device: %r", self.device_id, e)
                self._abort()
                return

    def _abort(self) -> None:
        self.closed = True
        self._writer.close()


class StreamBroadcaster:
    """Broadcaster over asyncio streams, one DeviceChannel per device."""

    def __init__(self, queue_size: int = SEND_QUEUE_SIZE, send_timeout: float = SEND_TIMEOUT) -> None:
        self._queue_size = queue_size
        self._send_timeout = send_timeout
        self._channels: dict[str, DeviceChannel] = {}

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._channels

    def attach(self, device_id: str, writer: asyncio.StreamWriter) -> DeviceChannel:
        channel = DeviceChannel(device_id, writer, self._queue_size, self._send_timeout)
        self._channels[device_id] = channel
        return channel

    async def detach(self, device_id: str) -> None:
        channel = self._channels.pop(device_id, None)
        if channel is not None:
            await channel.close()

    def send(self, device_id: str, message: dict) -> None:
        """Queue an event for one device.

        Raises:
            BroadcastError: If the device has no open channel or is backed up.
        """
        channel = self._channels.get(device_id)
        if channel is None:
            raise BroadcastError(f"No channel for device {device_id}")
        channel.offer(encode_message(message))

    def send_all(self, message: dict, excluding: str | None = None) -> list[str]:
        """Queue an event for every attached device except one.

        Returns:
            Ids of the devices the event was queued for.
        """
        frame = encode_message(message)
        delivered = []
        for device_id, channel in list(self._channels.items()):
            if device_id == excluding:
                continue
            try:
                channel.offer(frame)
            except BroadcastError as e:
                logger.debug("Skipping %s: %s", device_id, e)
                continue
            delivered.append(device_id)
        return delivered

    async def close(self) -> None:
        """Say goodbye to every device and stop all writers."""
        channels = list(self._channels.values())
        self._channels.clear()
        await asyncio.gather(*(channel.close(goodbye=True) for channel in channels))
