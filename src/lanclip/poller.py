#!/usr/bin/env python3
"""Host clipboard poller.

LocalPoller samples the host clipboard on a fixed interval and offers
changes to the sync engine as updates from the "local" source. A sample is
a change only when it differs from both the engine's latest value and the
previous sample, so a host clipboard that simply still holds an older value
is not replayed.

Reads share the engine's I/O lock with its background writes, and a sample
taken while the engine moved on (or while a write is still in flight) is
discarded, so the poller never mistakes a value the engine is about to
write for a foreign change.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import TYPE_CHECKING

from lanclip.clipboard_io import ClipboardIO, ClipboardReadError
from lanclip.constants import MIN_POLL_INTERVAL_MS, POLL_INTERVAL_MS, SOURCE_LOCAL
from lanclip.hashing import compute_hash
from lanclip.sync_types import ClipboardUpdate, IgnoreReason, SyncOutcome, SyncResult

if TYPE_CHECKING:
    from lanclip.sync_engine import SyncEngine

logger = logging.getLogger(__name__)

MIN_POLL_INTERVAL: float = MIN_POLL_INTERVAL_MS / 1000


def validate_interval(interval: float) -> float:
    """Check a polling interval in seconds.

    Raises:
        ValueError: If interval is below the 50 ms floor.
    """
    if interval < MIN_POLL_INTERVAL:
        raise ValueError(f"Polling interval must be at least {MIN_POLL_INTERVAL_MS} ms")
    return interval


class LocalPoller:
    """Periodic host clipboard sampler feeding a SyncEngine.

    Args:
        engine: Engine to feed.
        clipboard: Host clipboard to sample.
        interval: Seconds between samples.
    """

    def __init__(
        self,
        engine: SyncEngine,
        clipboard: ClipboardIO,
        interval: float = POLL_INTERVAL_MS / 1000,
    ) -> None:
        self.interval = validate_interval(interval)
        self._engine = engine
        self._clipboard = clipboard
        self._last_sample_hash: str | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Clipboard polling started (%d ms)", round(self.interval * 1000))

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def restart(self, interval: float) -> None:
        """Restart the timer with a new interval in seconds."""
        self.interval = validate_interval(interval)
        await self.stop()
        self.start()

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Clipboard poll failed")
            await asyncio.sleep(self.interval)

    async def poll_once(self) -> SyncResult | None:
        """Take one sample and ingest it if it is a change.

        Returns:
            The engine's result, or None when the tick was skipped.
        """
        engine = self._engine
        if engine.local_write_pending:
            return None
        revision = engine.revision
        try:
            async with engine.io_lock, asyncio.timeout(engine.config.io_timeout):
                content = await self._clipboard.read()
        except ClipboardReadError as e:
            logger.debug("Clipboard read skipped: %s", e)
            return None
        except TimeoutError:
            logger.debug("Clipboard read timed out")
            return None

        if engine.revision != revision or engine.local_write_pending:
            logger.debug("Engine state changed during read, discarding sample")
            return None
        if not content:
            return None

        current_hash = compute_hash(content)
        if current_hash == engine.last_hash:
            self._last_sample_hash = current_hash
            return None
        if current_hash == self._last_sample_hash:
            return None

        logger.debug("Local clipboard change detected (%d chars)", len(content))
        result = engine.ingest(
            ClipboardUpdate(content=content, source_id=SOURCE_LOCAL, auto_write=False)
        )
        # Queued and conflicting samples are offered again on the next tick
        if result.outcome is not SyncOutcome.QUEUED and result.reason is not IgnoreReason.CONFLICT:
            self._last_sample_hash = current_hash
        return result
