"""X11 CLIPBOARD backend.

X11Clipboard implements the ClipboardIO contract on top of python-xlib.

Writing takes ownership of CLIPBOARD with a hidden window and keeps the text
to serve SelectionRequest events from other applications. Reading asks the
current owner to convert CLIPBOARD to UTF8_STRING into a property on the
hidden window and polls for the SelectionNotify reply without blocking the
event loop. When lanclip itself owns CLIPBOARD the held text is returned
directly, since the owner cannot answer its own request mid-read.

Events that arrive during a read are set aside and handled once the read
finishes.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from Xlib import X

from lanclip.clipboard_io import ClipboardReadError, ClipboardWriteError
from lanclip.clipboard_selection import (
    RELEVANT_EVENT_TYPES,
    handle_selection_request,
    process_pending_events,
)

if TYPE_CHECKING:
    from Xlib.display import Display
    from Xlib.protocol.rq import Event
    from Xlib.xobject.drawable import Window

logger = logging.getLogger(__name__)

# Seconds between checks for the SelectionNotify reply during a read.
READ_POLL_INTERVAL: float = 0.005

# Property on the hidden window that receives converted selection data.
PROPERTY_NAME: str = "LANCLIP_SEL"


class X11Clipboard:
    """CLIPBOARD selection access through python-xlib.

    Args:
        display: Open X11 display connection.
        window: Hidden window used for ownership and conversions.
    """

    def __init__(self, display: Display, window: Window) -> None:
        self._display = display
        self._window = window
        self._clipboard_atom = display.intern_atom("CLIPBOARD")
        self._utf8_atom = display.intern_atom("UTF8_STRING")
        self._incr_atom = display.intern_atom("INCR")
        self._prop_atom = display.intern_atom(PROPERTY_NAME)
        self._content = b""
        self._deferred_events: list[Event] = []
        self._reading = False
        self._loop: asyncio.AbstractEventLoop | None = None

    def attach(self) -> None:
        """Serve selection requests whenever the display has events."""
        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(self._display.fileno(), self.serve_pending)

    def close(self) -> None:
        if self._loop is not None:
            self._loop.remove_reader(self._display.fileno())
            self._loop = None
        self._display.close()

    def serve_pending(self) -> None:
        """Handle pending SelectionRequest and SelectionClear events."""
        if self._reading:
            return
        for event in process_pending_events(self._display, self._deferred_events):
            if event.type == X.SelectionRequest:
                handle_selection_request(self._display, event, self._content)
            elif event.type == X.SelectionClear and event.selection == self._clipboard_atom:
                logger.debug("Lost CLIPBOARD ownership")

    def _owns_clipboard(self) -> bool:
        return self._display.get_selection_owner(self._clipboard_atom) == self._window

    async def read(self) -> str:
        """Return the current CLIPBOARD text.

        Raises:
            ClipboardReadError: When there is no owner, the owner refuses
                UTF8_STRING, or the data cannot be read.
        """
        try:
            owner = self._display.get_selection_owner(self._clipboard_atom)
        except Exception as e:
            raise ClipboardReadError(f"Failed to query clipboard owner: {e}") from e
        if owner == self._window:
            return self._content.decode("utf-8", "replace")
        if owner == X.NONE:
            raise ClipboardReadError("No clipboard owner")

        try:
            self._window.convert_selection(
                self._clipboard_atom, self._utf8_atom, self._prop_atom, X.CurrentTime
            )
            self._display.flush()
            notify = await self._wait_for_notify()
        except Exception as e:
            raise ClipboardReadError(f"Failed to convert selection: {e}") from e

        if notify.property == X.NONE:
            raise ClipboardReadError("Clipboard owner refused UTF8_STRING conversion")
        return self._read_property()

    async def _wait_for_notify(self) -> Event:
        """Poll the display until the SelectionNotify reply arrives."""
        self._reading = True
        try:
            notify = self._take_event(X.SelectionNotify)
            while notify is None:
                await asyncio.sleep(READ_POLL_INTERVAL)
                notify = self._take_event(X.SelectionNotify)
        finally:
            self._reading = False
        self.serve_pending()
        return notify

    def _take_event(self, event_type: int) -> Event | None:
        """Return the first pending event of event_type, deferring others."""
        while self._display.pending_events() > 0:
            event = self._display.next_event()
            if event.type == event_type:
                return event
            if event.type in RELEVANT_EVENT_TYPES:
                self._deferred_events.append(event)
        return None

    def _read_property(self) -> str:
        try:
            prop = self._window.get_full_property(self._prop_atom, X.AnyPropertyType)
            self._window.delete_property(self._prop_atom)
            self._display.flush()
        except Exception as e:
            raise ClipboardReadError(f"Failed to read selection property: {e}") from e

        if prop is None:
            raise ClipboardReadError("Selection property was empty")
        if prop.property_type == self._incr_atom:
            raise ClipboardReadError("Incremental transfers are not supported")
        data = prop.value
        if isinstance(data, str):
            return data
        return bytes(data).decode("utf-8", "replace")

    async def write(self, text: str) -> None:
        """Take CLIPBOARD ownership and serve text to other applications.

        Raises:
            ClipboardWriteError: If ownership could not be acquired.
        """
        data = text.encode("utf-8", "surrogatepass")
        try:
            self._window.set_selection_owner(self._clipboard_atom, X.CurrentTime)
            self._display.flush()
            owned = self._owns_clipboard()
        except Exception as e:
            raise ClipboardWriteError(f"Failed to set clipboard content: {e}") from e
        if not owned:
            raise ClipboardWriteError("Failed to acquire clipboard ownership")
        self._content = data
