#!/usr/bin/env python3
"""Typed lanclip events.

Inbound events are a closed set of frozen dataclasses. decode_event turns a
JSON object read from a device into exactly one of them, so the connection
handler can dispatch with a match statement and have the type checker flag
any kind it forgets.

Outbound events are plain dicts built by the *_message helpers below.
Timestamps on the wire are integer epoch milliseconds; inside the process
they are float epoch seconds.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from lanclip.protocol import ProtocolError

if TYPE_CHECKING:
    from lanclip.devices import Device
    from lanclip.history import HistoryItem


class InvalidEvent(ProtocolError):
    """A well-framed message that is not a valid event."""


@dataclass(frozen=True)
class Register:
    name: str | None = None
    device_type: str | None = None
    auto_sync: bool = True


@dataclass(frozen=True)
class Update:
    content: object
    timestamp: float | None = None
    auto_write: bool = True


@dataclass(frozen=True)
class ToggleAutoSync:
    enabled: bool


@dataclass(frozen=True)
class RequestHistory:
    pass


@dataclass(frozen=True)
class UseHistoryItem:
    index: int


@dataclass(frozen=True)
class RequestClipboard:
    pass


@dataclass(frozen=True)
class ForceSync:
    pass


@dataclass(frozen=True)
class UpdateSettings:
    auto_sync: bool | None = None
    polling_interval: float | None = None


@dataclass(frozen=True)
class RequestStatus:
    pass


@dataclass(frozen=True)
class Ping:
    pass


@dataclass(frozen=True)
class Disconnect:
    pass


InboundEvent = Union[
    Register,
    Update,
    ToggleAutoSync,
    RequestHistory,
    UseHistoryItem,
    RequestClipboard,
    ForceSync,
    UpdateSettings,
    RequestStatus,
    Ping,
    Disconnect,
]


def _optional(message: dict, key: str, kind: type | tuple[type, ...]) -> object:
    value = message.get(key)
    # bool is an int subclass; reject it where a number is expected
    if value is not None and (
        not isinstance(value, kind) or (isinstance(value, bool) and kind is not bool)
    ):
        raise InvalidEvent(f"Field {key!r} has invalid type {type(value).__name__}")
    return value


def _required(message: dict, key: str, kind: type) -> object:
    if key not in message:
        raise InvalidEvent(f"Missing field {key!r}")
    value = _optional(message, key, kind)
    if value is None:
        raise InvalidEvent(f"Field {key!r} must not be null")
    return value


def _decode_update(message: dict) -> Update:
    timestamp = _optional(message, "timestamp", (int, float))
    auto_write = _optional(message, "autoWrite", bool)
    return Update(
        content=message.get("content", ""),
        timestamp=None if timestamp is None else timestamp / 1000,
        auto_write=auto_write is not False,
    )


def _decode_register(message: dict) -> Register:
    auto_sync = _optional(message, "autoSync", bool)
    return Register(
        name=_optional(message, "name", str),
        device_type=_optional(message, "deviceType", str),
        auto_sync=auto_sync is not False,
    )


_DECODERS = {
    "register": _decode_register,
    "clipboard-update": _decode_update,
    "toggle-auto-sync": lambda m: ToggleAutoSync(enabled=_required(m, "enabled", bool)),
    "request-history": lambda m: RequestHistory(),
    "use-history-item": lambda m: UseHistoryItem(index=_required(m, "index", int)),
    "request-clipboard": lambda m: RequestClipboard(),
    "force-sync": lambda m: ForceSync(),
    "update-settings": lambda m: UpdateSettings(
        auto_sync=_optional(m, "autoSync", bool),
        polling_interval=_optional(m, "pollingInterval", (int, float)),
    ),
    "request-status": lambda m: RequestStatus(),
    "ping": lambda m: Ping(),
    "disconnect": lambda m: Disconnect(),
}


def decode_event(message: dict) -> InboundEvent:
    """Convert a decoded JSON object into an inbound event.

    Args:
        message: Object read from a device.

    Returns:
        The matching inbound event.

    Raises:
        InvalidEvent: On an unknown type or a field of the wrong type.
    """
    kind = message.get("type")
    decoder = _DECODERS.get(kind) if isinstance(kind, str) else None
    if decoder is None:
        raise InvalidEvent(f"Unknown event type: {kind!r}")
    return decoder(message)


def to_wire_time(timestamp: float) -> int:
    return int(timestamp * 1000)


def clipboard_update_message(
    content: str,
    source_id: str,
    timestamp: float,
    hash_value: str,
    auto_write: bool = True,
    force: bool = False,
) -> dict:
    message = {
        "type": "clipboard-update",
        "content": content,
        "from": source_id,
        "timestamp": to_wire_time(timestamp),
        "hash": hash_value,
        "autoWrite": auto_write,
    }
    if force:
        message["force"] = True
    return message


def register_message(name: str | None, device_type: str, auto_sync: bool = True) -> dict:
    return {"type": "register", "name": name, "deviceType": device_type, "autoSync": auto_sync}


def update_message(content: str, timestamp: float, auto_write: bool = True) -> dict:
    return {
        "type": "clipboard-update",
        "content": content,
        "timestamp": to_wire_time(timestamp),
        "autoWrite": auto_write,
    }


def device_list_message(devices: Iterable[Device]) -> dict:
    return {"type": "device-list", "devices": [device.to_dict() for device in devices]}


def history_message(items: Iterable[HistoryItem]) -> dict:
    history = []
    for item in items:
        entry = item.to_dict()
        entry["timestamp"] = to_wire_time(item.timestamp)
        history.append(entry)
    return {"type": "clipboard-history", "history": history}


def rejected_message(reason: str) -> dict:
    return {"type": "rejected", "reason": reason}


def settings_message(auto_sync: bool, polling_interval: int) -> dict:
    return {"type": "settings", "autoSync": auto_sync, "pollingInterval": polling_interval}


def status_message(stats: dict) -> dict:
    return {"type": "status", **stats}


def pong_message(timestamp: float) -> dict:
    return {"type": "pong", "timestamp": to_wire_time(timestamp)}


def error_message(text: str) -> dict:
    return {"type": "error", "message": text}
