#!/usr/bin/env python3
"""Clipboard sync engine.

SyncEngine decides what happens to every clipboard change offered to the
relay, whether it comes from a device, the host's own clipboard poller or
an explicit request. For each update it runs, in order:

1. validation: empty or non-text content is rejected outright
2. global gate: device updates are ignored while auto-sync is off
3. loop suppression: the value already held is ignored
4. rate limiting: updates closer than min_sync_interval to the last one
   are parked in a single pending slot; a newer arrival replaces the
   parked one, so the last write wins
5. conflict window: a value evaluated moments ago by another update is a
   ping-pong between devices and is ignored
6. filtering: sensitive or oversized content becomes the latest known
   value but is never recorded, written or broadcast
7. accept: record history, write the host clipboard in the background and
   queue the event for every auto-sync device except the source

ingest() never awaits. It must be called from the event loop thread, which
serializes all mutation of the engine state.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from lanclip.broadcaster import BroadcastError, Broadcaster
from lanclip.clipboard_io import ClipboardIO, ClipboardWriteError
from lanclip.constants import (
    CLIPBOARD_IO_TIMEOUT,
    CONFLICT_RETENTION,
    CONFLICT_WINDOW,
    MIN_SYNC_INTERVAL,
    SOURCE_API,
    SOURCE_HISTORY,
    SOURCE_LOCAL,
    SOURCE_SERVER,
)
from lanclip.content_filter import ContentFilter, RejectReason
from lanclip.debounce import PendingSlot
from lanclip.devices import DeviceRegistry
from lanclip.events import clipboard_update_message
from lanclip.hashing import EMPTY_HASH, compute_hash
from lanclip.history import HistoryStore
from lanclip.sync_state import ConflictEntry, SyncState
from lanclip.sync_types import ClipboardUpdate, IgnoreReason, SyncOutcome, SyncResult

logger = logging.getLogger(__name__)

# Sources that still go through while auto-sync is disabled.
GATE_EXEMPT_SOURCES: frozenset[str] = frozenset({SOURCE_LOCAL, SOURCE_API, SOURCE_HISTORY})


@dataclass
class EngineConfig:
    """Timing tunables for SyncEngine, in seconds."""

    min_sync_interval: float = MIN_SYNC_INTERVAL
    conflict_window: float = CONFLICT_WINDOW
    conflict_retention: float = CONFLICT_RETENTION
    io_timeout: float = CLIPBOARD_IO_TIMEOUT


class SyncEngine:
    """Conflict resolution and fan-out for clipboard updates.

    Args:
        clipboard: Host clipboard, written for accepted non-local updates.
        broadcaster: Delivers events to devices.
        registry: Source of fan-out targets; only read here.
        history: Store for accepted values.
        content_filter: Decides which content may be synchronized.
        config: Timing tunables.
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        clipboard: ClipboardIO,
        broadcaster: Broadcaster,
        registry: DeviceRegistry,
        history: HistoryStore | None = None,
        content_filter: ContentFilter | None = None,
        config: EngineConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or EngineConfig()
        self.state = SyncState()
        self.history = history if history is not None else HistoryStore()
        self.registry = registry
        self.io_lock = asyncio.Lock()
        self.on_accepted: Callable[[ClipboardUpdate, SyncResult], None] | None = None
        self._clipboard = clipboard
        self._broadcaster = broadcaster
        self.content_filter = content_filter or ContentFilter()
        self._clock = clock
        self._pending: PendingSlot[ClipboardUpdate] = PendingSlot(self._on_pending_due)
        self._write_tasks: set[asyncio.Task[None]] = set()

    @property
    def last_hash(self) -> str:
        return self.state.last_hash

    @property
    def revision(self) -> int:
        return self.state.revision

    @property
    def auto_sync_enabled(self) -> bool:
        return self.state.auto_sync_enabled

    @property
    def pending_update(self) -> ClipboardUpdate | None:
        return self._pending.item

    @property
    def local_write_pending(self) -> bool:
        return bool(self._write_tasks)

    def set_auto_sync(self, enabled: bool) -> None:
        self.state.auto_sync_enabled = enabled
        logger.info("Global auto-sync: %s", enabled)

    def ingest(self, update: ClipboardUpdate) -> SyncResult:
        """Evaluate one clipboard update.

        Args:
            update: The incoming change.

        Returns:
            ACCEPTED with the recipients, QUEUED when deferred by rate
            limiting, REJECTED with a RejectReason, or IGNORED with an
            IgnoreReason.
        """
        return self._evaluate(update, rate_limited=True)

    def _on_pending_due(self, update: ClipboardUpdate) -> None:
        result = self._evaluate(update, rate_limited=False)
        logger.debug("Deferred update from %s: %s", update.source_id, result.outcome.value)

    def _evaluate(self, update: ClipboardUpdate, rate_limited: bool) -> SyncResult:
        state = self.state
        content = update.content
        if not isinstance(content, str):
            return self._rejected(RejectReason.NOT_TEXT, EMPTY_HASH, update)
        if not content:
            return self._rejected(RejectReason.EMPTY, EMPTY_HASH, update)

        if not state.auto_sync_enabled and update.source_id not in GATE_EXEMPT_SOURCES:
            return self._ignored(IgnoreReason.AUTO_SYNC_DISABLED, None, update)

        content_hash = compute_hash(content)
        if content_hash == state.last_hash:
            return self._ignored(IgnoreReason.DUPLICATE, content_hash, update)

        now = self._clock()
        if rate_limited and not update.forced and state.last_at is not None:
            remaining = state.last_at + self.config.min_sync_interval - now
            if remaining > 0:
                displaced = self._pending.arm(update, remaining)
                if displaced is not None:
                    logger.debug("Update from %s superseded by %s", displaced.source_id, update.source_id)
                state.queued += 1
                return SyncResult(SyncOutcome.QUEUED, hash=content_hash)

        displaced = self._pending.cancel()
        if displaced is not None:
            logger.debug("Pending update from %s superseded by %s", displaced.source_id, update.source_id)

        entry = state.recent_hashes.get(content_hash)
        conflict = (
            entry is not None
            and entry.update is not update
            and now - entry.seen_at < self.config.conflict_window
        )
        state.recent_hashes[content_hash] = ConflictEntry(now, update)
        if conflict:
            logger.debug("Resolving clipboard conflict for update from %s", update.source_id)
            return self._ignored(IgnoreReason.CONFLICT, content_hash, update)

        reason = self.content_filter.check(content)
        state.last_content = content
        state.last_hash = content_hash
        state.last_at = now
        state.revision += 1
        if reason is not None:
            logger.info("Update from %s blocked by filter: %s", update.source_id, reason.value)
            state.rejected += 1
            return SyncResult(SyncOutcome.REJECTED, reason=reason, hash=content_hash)

        return self._accept(update, content_hash)

    def _accept(self, update: ClipboardUpdate, content_hash: str) -> SyncResult:
        state = self.state
        content = update.content
        state.published_content = content
        state.published_hash = content_hash
        state.published_at = update.timestamp
        state.accepted += 1

        if update.auto_write and update.source_id != SOURCE_LOCAL:
            self._schedule_write(content)

        self.history.record(content, content_hash, update.timestamp)

        message = clipboard_update_message(content, update.source_id, update.timestamp, content_hash)
        recipients = []
        for target in self.registry.list_auto_sync_targets(excluding=update.source_id):
            try:
                self._broadcaster.send(target, message)
            except BroadcastError as e:
                logger.warning("Could not queue update for %s: %s", target, e)
                continue
            recipients.append(target)

        logger.debug(
            "Clipboard from %s synced to %d devices (%d chars)",
            update.source_id, len(recipients), len(content),
        )
        result = SyncResult(SyncOutcome.ACCEPTED, hash=content_hash, recipients=tuple(recipients))
        if self.on_accepted is not None:
            self.on_accepted(update, result)
        return result

    def _rejected(self, reason: RejectReason, content_hash: str, update: ClipboardUpdate) -> SyncResult:
        logger.debug("Invalid update from %s: %s", update.source_id, reason.value)
        self.state.rejected += 1
        return SyncResult(SyncOutcome.REJECTED, reason=reason, hash=content_hash)

    def _ignored(self, reason: IgnoreReason, content_hash: str | None, update: ClipboardUpdate) -> SyncResult:
        logger.debug("Ignoring update from %s: %s", update.source_id, reason.value)
        self.state.ignored += 1
        return SyncResult(SyncOutcome.IGNORED, reason=reason, hash=content_hash)

    def _schedule_write(self, content: str) -> None:
        task = asyncio.get_running_loop().create_task(self._write_local(content))
        self._write_tasks.add(task)
        task.add_done_callback(self._write_tasks.discard)

    async def _write_local(self, content: str) -> None:
        async with self.io_lock:
            try:
                async with asyncio.timeout(self.config.io_timeout):
                    await self._clipboard.write(content)
            except ClipboardWriteError as e:
                logger.warning("Failed to write local clipboard: %s", e)
            except TimeoutError:
                logger.warning("Local clipboard write timed out after %.1fs", self.config.io_timeout)
            else:
                logger.debug("Local clipboard updated (%d chars)", len(content))

    async def wait_for_writes(self) -> None:
        """Wait until every scheduled host clipboard write has finished."""
        while self._write_tasks:
            await asyncio.gather(*self._write_tasks, return_exceptions=True)

    def prune_conflicts(self, now: float | None = None) -> int:
        """Drop conflict window entries older than conflict_retention.

        Returns:
            Number of entries removed.
        """
        if now is None:
            now = self._clock()
        retention = self.config.conflict_retention
        expired = [
            content_hash
            for content_hash, entry in self.state.recent_hashes.items()
            if now - entry.seen_at > retention
        ]
        for content_hash in expired:
            del self.state.recent_hashes[content_hash]
        return len(expired)

    def resync_message(self, force: bool = False) -> dict | None:
        """The published value as an outbound event, or None if there is none."""
        if not self.state.published_content:
            return None
        return clipboard_update_message(
            self.state.published_content,
            SOURCE_SERVER,
            time.time(),
            self.state.published_hash,
            force=force,
        )

    def stats(self) -> dict:
        state = self.state
        return {
            "acceptedUpdates": state.accepted,
            "totalSyncs": state.accepted,
            "rejectedUpdates": state.rejected,
            "ignoredUpdates": state.ignored,
            "queuedUpdates": state.queued,
            "pendingUpdate": self._pending.item is not None,
            "conflictEntries": len(state.recent_hashes),
            "historyItems": len(self.history),
            "connectedDevices": self.registry.count(),
            "autoSyncDevices": self.registry.auto_sync_count(),
            "autoSyncEnabled": state.auto_sync_enabled,
            "lastSyncTime": int(state.published_at * 1000),
            "contentLength": len(state.published_content),
        }

    def close(self) -> None:
        """Drop the pending update and cancel host clipboard writes."""
        self._pending.cancel()
        for task in list(self._write_tasks):
            task.cancel()
