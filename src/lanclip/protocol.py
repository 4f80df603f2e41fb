#!/usr/bin/env python3
"""
Wire framing between the relay and its devices.

A frame is a netstring, `<decimal length>:<payload>,`, so `3:abc,` carries
the three bytes "abc". The payload of every frame is one compact UTF-8 JSON
object whose "type" key names the event. A frame with no payload (`0:,`)
tells the other side the connection is being shut down on purpose.

Framing errors raise ProtocolError. End of stream at a frame boundary
raises ConnectionClosed instead, so callers can tell a peer that simply
went away from one that sent garbage.
"""
import asyncio
import json
import logging

logger = logging.getLogger(__name__)

# Largest accepted payload in bytes (1 MiB). The content filter caps
# clipboard text far below this.
MAX_FRAME_SIZE: int = 1048576

# Longest accepted length prefix, in digits.
MAX_LENGTH_DIGITS: int = 8

# Frame sent before an intentional disconnect.
GOODBYE_MESSAGE: bytes = b"0:,"

# Seconds to wait for the goodbye frame to drain.
GOODBYE_DRAIN_TIMEOUT: float = 2.0


class ProtocolError(Exception):
    """A frame or its payload could not be decoded."""


class ConnectionClosed(ProtocolError):
    """The peer closed the stream between two frames."""


def encode_netstring(data: bytes) -> bytes:
    """Wrap data in a length prefix and a trailing comma."""
    return b"%d:%s," % (len(data), data)


def encode_message(message: dict) -> bytes:
    """
    Serialize an event into a ready-to-write frame.

    Args:
        message: JSON-serializable event with a "type" key.

    Returns:
        The framed bytes.
    """
    payload = json.dumps(message, ensure_ascii=False, separators=(",", ":"))
    return encode_netstring(payload.encode("utf-8", "surrogatepass"))


async def _read_length(reader: asyncio.StreamReader) -> int:
    digits = bytearray()
    while True:
        char = await reader.read(1)
        if char == b":":
            break
        if not char:
            if digits:
                raise ProtocolError("Stream ended while reading length prefix")
            raise ConnectionClosed("Stream ended")
        if not char.isdigit():
            raise ProtocolError(f"Unexpected byte in length prefix: {char!r}")
        if len(digits) == MAX_LENGTH_DIGITS:
            raise ProtocolError(f"Length prefix longer than {MAX_LENGTH_DIGITS} digits")
        digits += char
    if not digits:
        raise ProtocolError("Missing length prefix")
    return int(digits)


async def read_netstring(reader: asyncio.StreamReader) -> bytes:
    """
    Read one frame and return its payload.

    Args:
        reader: Stream to read from.

    Returns:
        The payload bytes, empty for a goodbye.

    Raises:
        ConnectionClosed: The stream ended before a new frame started.
        ProtocolError: The frame is malformed, too large or truncated.
    """
    length = await _read_length(reader)
    if length > MAX_FRAME_SIZE:
        raise ProtocolError(f"Frame of {length} bytes is over the {MAX_FRAME_SIZE} byte limit")
    try:
        payload = await reader.readexactly(length)
    except asyncio.IncompleteReadError as e:
        raise ProtocolError(f"Frame truncated at {len(e.partial)} of {length} bytes") from e
    terminator = await reader.read(1)
    if terminator != b",":
        raise ProtocolError(f"Frame not terminated by a comma: {terminator!r}")
    return payload


async def read_message(reader: asyncio.StreamReader) -> dict | None:
    """
    Read one event object.

    Returns:
        The event, or None when the peer said goodbye.

    Raises:
        ConnectionClosed: The stream ended between frames.
        ProtocolError: Bad framing, or a payload that is not a JSON object.
    """
    payload = await read_netstring(reader)
    if is_goodbye(payload):
        return None
    try:
        message = json.loads(payload.decode("utf-8", "surrogatepass"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ProtocolError(f"Payload is not valid JSON: {e}") from e
    if not isinstance(message, dict):
        raise ProtocolError(f"Payload is a JSON {type(message).__name__}, not an object")
    return message


async def send_message(writer: asyncio.StreamWriter, message: dict) -> None:
    """Write one event and wait for the transport to accept it."""
    writer.write(encode_message(message))
    await writer.drain()


async def send_goodbye(writer: asyncio.StreamWriter) -> None:
    """
    Tell the peer this side is disconnecting.

    Best effort: a stream that is already broken or stalled is left alone.
    """
    try:
        writer.write(GOODBYE_MESSAGE)
        async with asyncio.timeout(GOODBYE_DRAIN_TIMEOUT):
            await writer.drain()
    except (OSError, TimeoutError) as e:
        logger.debug("Goodbye not delivered: %r", e)


def is_goodbye(payload: bytes) -> bool:
    return payload == b""
