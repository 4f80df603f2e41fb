#!/usr/bin/env python3
"""Value types passed into and out of the sync engine.

A ClipboardUpdate describes one incoming clipboard change. A SyncResult
tells the caller what the engine decided to do with it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from lanclip.content_filter import RejectReason


@dataclass(frozen=True, eq=False)
class ClipboardUpdate:
    """One clipboard change offered to the engine.

    Updates compare by identity: two updates with identical fields are
    still different arrivals.

    Attributes:
        content: The clipboard text.
        source_id: Device id, or one of the sentinels "local", "api",
            "history".
        timestamp: Epoch seconds; assigned on creation when not given.
        auto_write: Whether this change should be written to the host
            clipboard. False for the local poller, which only observes.
        forced: Skip rate limiting, for explicit resync requests.
    """

    content: str
    source_id: str
    timestamp: float = field(default_factory=time.time)
    auto_write: bool = True
    forced: bool = False


class SyncOutcome(str, Enum):
    ACCEPTED = "accepted"
    QUEUED = "queued"
    REJECTED = "rejected"
    IGNORED = "ignored"


class IgnoreReason(str, Enum):
    """Why an update was dropped without being considered a change."""

    AUTO_SYNC_DISABLED = "auto_sync_disabled"
    DUPLICATE = "duplicate"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class SyncResult:
    """Outcome of SyncEngine.ingest.

    Attributes:
        outcome: What happened to the update.
        reason: RejectReason for REJECTED, IgnoreReason for IGNORED.
        hash: Fingerprint of the content, when it was computed.
        recipients: Device ids the update was sent to (ACCEPTED only).
    """

    outcome: SyncOutcome
    reason: RejectReason | IgnoreReason | None = None
    hash: str | None = None
    recipients: tuple[str, ...] = ()

    @property
    def accepted(self) -> bool:
        return self.outcome is SyncOutcome.ACCEPTED
