#!/usr/bin/env python3
"""Connected device registry.

The registry is the only owner of device records. A device is added when
its connection sends a register event, changes when it toggles auto-sync,
and is removed when the connection goes away. The sync engine only reads
from it to pick fan-out targets.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

logger = logging.getLogger(__name__)


class DeviceType(str, Enum):
    """Kind of device, as reported at registration."""

    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> DeviceType:
        """Map a reported type to a DeviceType, defaulting to UNKNOWN."""
        try:
            return cls((value or "").lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass
class Device:
    """A registered device.

    Attributes:
        id: Connection id assigned by the transport.
        name: Human-readable name.
        type: Reported device kind.
        auto_sync: Whether the device receives automatic broadcasts.
        connected_at: UTC registration time.
    """

    id: str
    name: str
    type: DeviceType = DeviceType.UNKNOWN
    auto_sync: bool = True
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "autoSync": self.auto_sync,
            "connectedAt": self.connected_at.isoformat(),
        }


class DeviceRegistry:
    """Map of connected devices keyed by connection id.

    Every query returns a snapshot, so a caller iterating fan-out targets
    never sees a device added or removed halfway through.
    """

    def __init__(self) -> None:
        self._devices: dict[str, Device] = {}

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._devices

    def register(
        self,
        device_id: str,
        name: str | None = None,
        device_type: str | None = None,
        auto_sync: bool = True,
    ) -> Device:
        """Add a device, replacing any earlier record with the same id.

        Args:
            device_id: Connection id assigned by the transport.
            name: Display name; defaults to "Device <id prefix>".
            device_type: Reported type string.
            auto_sync: Initial auto-sync preference.

        Returns:
            The new Device record.
        """
        device = Device(
            id=device_id,
            name=name or f"Device {device_id[:6]}",
            type=DeviceType.parse(device_type),
            auto_sync=auto_sync,
        )
        self._devices[device_id] = device
        logger.info(
            "Device registered: %s (%s) auto-sync=%s",
            device.name, device.type.value, device.auto_sync,
        )
        return device

    def unregister(self, device_id: str) -> Device | None:
        """Remove a device; unknown ids are ignored."""
        device = self._devices.pop(device_id, None)
        if device is not None:
            logger.info("Device unregistered: %s", device.name)
        return device

    def set_auto_sync(self, device_id: str, enabled: bool) -> bool:
        """Change a device's auto-sync preference.

        Returns:
            True if the device exists, False otherwise.
        """
        device = self._devices.get(device_id)
        if device is None:
            logger.debug("Auto-sync toggle for unknown device %s", device_id)
            return False
        device.auto_sync = enabled
        logger.info("Device %s auto-sync: %s", device.name, enabled)
        return True

    def get(self, device_id: str) -> Device | None:
        return self._devices.get(device_id)

    def devices(self) -> tuple[Device, ...]:
        return tuple(self._devices.values())

    def list_auto_sync_targets(self, excluding: str | None = None) -> tuple[str, ...]:
        """Ids of every auto-sync device except the excluded one."""
        return tuple(
            device_id
            for device_id, device in self._devices.items()
            if device.auto_sync and device_id != excluding
        )

    def count(self) -> int:
        return len(self._devices)

    def auto_sync_count(self) -> int:
        return sum(1 for device in self._devices.values() if device.auto_sync)
