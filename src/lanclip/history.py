#!/usr/bin/env python3
"""Bounded in-memory clipboard history.

History lives for the lifetime of the process only. It keeps the distinct
values that were accepted and delivered, most recent first. Recording a value
that is already present moves it to the front instead of adding a second
copy, and the oldest entries fall off the tail once the cap is reached.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from lanclip.constants import HISTORY_CONTENT_LIMIT, HISTORY_PREVIEW_LENGTH, HISTORY_SIZE


class HistoryItemNotFound(IndexError):
    """Raised when a history index does not refer to a stored item."""


@dataclass(frozen=True)
class HistoryItem:
    """One history entry.

    Attributes:
        content: Stored text, truncated to HISTORY_CONTENT_LIMIT characters.
        preview: Single-line prefix for display.
        hash: Fingerprint of the full original content.
        timestamp: Epoch seconds of the most recent occurrence.
        size: Length of the full original content.
    """

    content: str
    preview: str
    hash: str
    timestamp: float
    size: int

    @classmethod
    def from_content(cls, content: str, hash_value: str, timestamp: float) -> HistoryItem:
        preview = content[:HISTORY_PREVIEW_LENGTH].replace("\r\n", " ").replace("\n", " ")
        return cls(
            content=content[:HISTORY_CONTENT_LIMIT],
            preview=preview,
            hash=hash_value,
            timestamp=timestamp,
            size=len(content),
        )

    def to_dict(self) -> dict:
        return asdict(self)


class HistoryStore:
    """Most-recent-first, deduplicated, capped list of HistoryItem."""

    def __init__(self, max_size: int = HISTORY_SIZE) -> None:
        if max_size < 1:
            raise ValueError("history size must be at least 1")
        self.max_size = max_size
        self._items: list[HistoryItem] = []

    def __len__(self) -> int:
        return len(self._items)

    @property
    def front(self) -> HistoryItem | None:
        """The most recent item, or None when history is empty."""
        return self._items[0] if self._items else None

    def record(self, content: str, hash_value: str, timestamp: float) -> None:
        """Record an accepted value.

        A hash equal to the front item is a no-op. A hash found further down
        is promoted to the front with its content and timestamp refreshed.
        Anything else is inserted at the front, evicting from the tail when
        the store is over capacity.

        Args:
            content: The full accepted clipboard text.
            hash_value: Fingerprint of content.
            timestamp: Epoch seconds of this occurrence.
        """
        if self._items and self._items[0].hash == hash_value:
            return
        self._items = [item for item in self._items if item.hash != hash_value]
        self._items.insert(0, HistoryItem.from_content(content, hash_value, timestamp))
        del self._items[self.max_size:]

    def list(self) -> tuple[HistoryItem, ...]:
        """Return a read-only snapshot, most recent first."""
        return tuple(self._items)

    def clear(self) -> None:
        self._items.clear()

    def use_item(self, index: int) -> HistoryItem:
        """Return the item at index without removing it.

        Raises:
            HistoryItemNotFound: If index is negative or past the end.
        """
        if not 0 <= index < len(self._items):
            raise HistoryItemNotFound(f"No history item at index {index}")
        return self._items[index]
