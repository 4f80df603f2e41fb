"""OS clipboard access contract.

The sync engine and the local poller never talk to a windowing system
directly. They are handed an object with an async read() and write() and
treat every failure as a ClipboardReadError or ClipboardWriteError.

This module provides:
- ClipboardIO: the structural contract
- ClipboardReadError / ClipboardWriteError
- MemoryClipboard: a process-local clipboard for headless hosts and tests

The X11 backend lives in clipboard_x11.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


class ClipboardReadError(Exception):
    """Raised when the clipboard cannot be read (no owner, timeout, denied)."""


class ClipboardWriteError(Exception):
    """Raised when the clipboard cannot be set."""


@runtime_checkable
class ClipboardIO(Protocol):
    """Read and write plain text on a clipboard."""

    async def read(self) -> str:
        ...

    async def write(self, text: str) -> None:
        ...

    def close(self) -> None:
        ...


class MemoryClipboard:
    """Clipboard held in process memory.

    Used on hosts without a display, where the relay only forwards between
    devices, and as a test double.

    Args:
        content: Initial clipboard text.
    """

    def __init__(self, content: str = "") -> None:
        self.content = content
        self.writes: list[str] = []

    async def read(self) -> str:
        if not self.content:
            raise ClipboardReadError("Clipboard is empty")
        return self.content

    async def write(self, text: str) -> None:
        self.content = text
        self.writes.append(text)

    def close(self) -> None:
        pass
