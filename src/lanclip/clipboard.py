"""Host clipboard backend selection.

open_clipboard() returns MemoryClipboard for --headless hosts and
otherwise an X11Clipboard bound to the display named by $DISPLAY. The X11
backend needs a window to own CLIPBOARD and to receive conversions into;
create_hidden_window() makes one that is never mapped.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

from Xlib import X
from Xlib.error import DisplayError

from lanclip.clipboard_io import MemoryClipboard

if TYPE_CHECKING:
    from Xlib.display import Display
    from Xlib.xobject.drawable import Window

    from lanclip.clipboard_x11 import X11Clipboard


def validate_display() -> Display:
    """Connect to $DISPLAY or exit with status 1.

    Returns:
        The open display connection.

    Raises:
        SystemExit: When $DISPLAY is unset or unreachable.
    """
    display_name = os.environ.get("DISPLAY")
    if not display_name:
        print(
            "Error: no X11 display ($DISPLAY is empty). "
            "Pass --headless to relay without a host clipboard.",
            file=sys.stderr,
        )
        sys.exit(1)

    from Xlib.display import Display as XDisplay

    try:
        return XDisplay(display_name)
    except (DisplayError, OSError) as e:
        print(f"Error: cannot open X11 display {display_name}: {e}", file=sys.stderr)
        sys.exit(1)


def create_hidden_window(display: Display) -> Window:
    """Return an unmapped 1x1 child of the root window."""
    screen = display.screen()
    return screen.root.create_window(
        0, 0, 1, 1, 0, screen.root_depth, event_mask=X.PropertyChangeMask,
    )


def open_clipboard(headless: bool) -> MemoryClipboard | X11Clipboard:
    """Open the host clipboard.

    Call from inside the running event loop: the X11 backend registers its
    display socket with it.
    """
    if headless:
        return MemoryClipboard()

    from lanclip.clipboard_x11 import X11Clipboard

    display = validate_display()
    clipboard = X11Clipboard(display, create_hidden_window(display))
    clipboard.attach()
    return clipboard
