#!/usr/bin/env python3
"""Single-slot deferred task.

PendingSlot holds at most one item and one timer. Arming it while it is
already armed replaces both the item and the timer, so a burst of arrivals
leaves only the newest one to fire. The slot is either EMPTY or ARMED with
an item and a fire time; there are no other flags.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class SlotState(Enum):
    EMPTY = "empty"
    ARMED = "armed"


class PendingSlot(Generic[T]):
    """Cancelable, replaceable deferred call carrying one item.

    Must be used from inside a running event loop.

    Args:
        on_fire: Called with the item when the timer expires.
    """

    def __init__(self, on_fire: Callable[[T], None]) -> None:
        self._on_fire = on_fire
        self._item: T | None = None
        self._handle: asyncio.TimerHandle | None = None

    @property
    def state(self) -> SlotState:
        return SlotState.EMPTY if self._handle is None else SlotState.ARMED

    @property
    def item(self) -> T | None:
        return self._item

    @property
    def fire_at(self) -> float | None:
        """Event loop time at which the slot fires, or None when empty."""
        return None if self._handle is None else self._handle.when()

    def arm(self, item: T, delay: float) -> T | None:
        """Hold item and fire after delay seconds.

        Args:
            item: The item to deliver when the timer fires.
            delay: Seconds from now; negative values fire on the next tick.

        Returns:
            The item that was displaced, or None if the slot was empty.
        """
        displaced = self.cancel()
        loop = asyncio.get_running_loop()
        self._item = item
        self._handle = loop.call_later(max(delay, 0.0), self._fire)
        return displaced

    def cancel(self) -> T | None:
        """Empty the slot without firing.

        Returns:
            The item that was pending, or None.
        """
        if self._handle is None:
            return None
        self._handle.cancel()
        item = self._item
        self._handle = None
        self._item = None
        return item

    def _fire(self) -> None:
        item = self._item
        self._handle = None
        self._item = None
        if item is not None:
            self._on_fire(item)
