#!/usr/bin/env python3
"""Mutable sync engine state.

Grouped in one dataclass so the engine has a single owned record of what it
last accepted, which fingerprints it saw recently and its counters. Only
SyncEngine writes to it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from lanclip.hashing import EMPTY_HASH
from lanclip.sync_types import ClipboardUpdate


class ConflictEntry(NamedTuple):
    """When a fingerprint was last evaluated, and by which update."""

    seen_at: float
    update: ClipboardUpdate


@dataclass
class SyncState:
    """State for the clipboard sync engine.

    Attributes:
        last_content: Latest known value, accepted or rejected.
        last_hash: Fingerprint of last_content.
        last_at: Monotonic time last_content was set, or None.
        revision: Bumped whenever last_hash changes.
        recent_hashes: Conflict window memory, fingerprint to entry.
        auto_sync_enabled: Global switch for device-originated updates.
        published_content: Latest value actually delivered to devices.
        published_hash: Fingerprint of published_content.
        published_at: Epoch seconds of published_content.
        accepted: Number of accepted updates.
        rejected: Number of filtered updates.
        ignored: Number of ignored updates.
        queued: Number of updates that were deferred.
    """

    last_content: str = ""
    last_hash: str = EMPTY_HASH
    last_at: float | None = None
    revision: int = 0
    recent_hashes: dict[str, ConflictEntry] = field(default_factory=dict)
    auto_sync_enabled: bool = True
    published_content: str = ""
    published_hash: str = EMPTY_HASH
    published_at: float = 0.0
    accepted: int = 0
    rejected: int = 0
    ignored: int = 0
    queued: int = 0
