#!/usr/bin/env python3
"""Runtime settings updates.

Devices may switch global auto-sync on or off and change the host clipboard
polling interval. Intervals below the 50 ms floor are ignored.
"""

from __future__ import annotations

import logging
import math
import time
from typing import TYPE_CHECKING

from lanclip.constants import MIN_POLL_INTERVAL_MS
from lanclip.events import settings_message, status_message

if TYPE_CHECKING:
    from lanclip.server_state import ServerState

logger = logging.getLogger(__name__)


async def apply_settings(
    state: ServerState,
    auto_sync: bool | None = None,
    polling_interval: float | None = None,
) -> dict:
    """Apply a settings update and report the resulting settings.

    Args:
        state: The relay server state.
        auto_sync: New global auto-sync switch, or None to keep it.
        polling_interval: New polling interval in milliseconds, or None.

    Returns:
        A settings event describing the settings now in effect.
    """
    if auto_sync is not None:
        state.engine.set_auto_sync(auto_sync)
    if polling_interval is not None:
        if math.isfinite(polling_interval) and polling_interval >= MIN_POLL_INTERVAL_MS:
            await state.poller.restart(polling_interval / 1000)
            logger.info("Clipboard polling restarted with %s ms interval", polling_interval)
        else:
            logger.warning(
                "Ignoring polling interval %s ms, minimum is %d ms",
                polling_interval, MIN_POLL_INTERVAL_MS,
            )
    return current_settings(state)


def current_settings(state: ServerState) -> dict:
    return settings_message(state.engine.auto_sync_enabled, round(state.poller.interval * 1000))


def server_status(state: ServerState) -> dict:
    """Engine statistics plus polling interval and uptime, both in ms."""
    uptime = time.monotonic() - state.started_at
    return status_message({
        **state.engine.stats(),
        "pollingInterval": round(state.poller.interval * 1000),
        "uptime": round(uptime * 1000),
    })
