"""Serving CLIPBOARD to other X11 clients.

While lanclip owns CLIPBOARD, any application that pastes sends it a
SelectionRequest naming a target format. lanclip answers three targets:
TARGETS (what it can offer), UTF8_STRING and the Latin-1 STRING. Every
other target is refused by replying with property None.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from Xlib import X, Xatom
from Xlib.protocol.event import SelectionNotify

if TYPE_CHECKING:
    from Xlib.display import Display
    from Xlib.protocol.event import SelectionRequest
    from Xlib.protocol.rq import Event

logger = logging.getLogger(__name__)

# Event types the backend handles; anything else read off the display is dropped.
RELEVANT_EVENT_TYPES: frozenset[int] = frozenset({X.SelectionRequest, X.SelectionClear})


def _convert(display: Display, target: int, content: bytes) -> tuple[int, int, object] | None:
    """Return (type, format, data) for target, or None if it is not offered."""
    targets_atom = display.intern_atom("TARGETS")
    utf8_atom = display.intern_atom("UTF8_STRING")
    if target == targets_atom:
        return Xatom.ATOM, 32, [targets_atom, utf8_atom, Xatom.STRING]
    if target == utf8_atom:
        return utf8_atom, 8, content
    if target == Xatom.STRING:
        text = content.decode("utf-8", "replace")
        return Xatom.STRING, 8, text.encode("latin-1", "replace")
    return None


def handle_selection_request(display: Display, event: SelectionRequest, content: bytes) -> None:
    """Answer one SelectionRequest with the held UTF-8 content."""
    converted = _convert(display, event.target, content)
    if converted is None:
        logger.debug("Refusing selection target %s", event.target)
        reply_property = X.NONE
    else:
        prop_type, prop_format, data = converted
        event.requestor.change_property(event.property, prop_type, prop_format, data)
        reply_property = event.property

    event.requestor.send_event(
        SelectionNotify(
            time=event.time,
            requestor=event.requestor.id,
            selection=event.selection,
            target=event.target,
            property=reply_property,
        ),
        event_mask=0,
    )
    display.flush()


def process_pending_events(
    display: Display, deferred_events: list[Event] | None = None
) -> list[Event]:
    """Drain queued display events without blocking.

    Args:
        display: The X11 display connection.
        deferred_events: Events set aside during a read; emptied and
            returned ahead of the newly read ones.

    Returns:
        SelectionRequest and SelectionClear events in arrival order.
    """
    events = list(deferred_events or ())
    if deferred_events:
        deferred_events.clear()
    while display.pending_events() > 0:
        event = display.next_event()
        if event.type in RELEVANT_EVENT_TYPES:
            events.append(event)
    return events
