#!/usr/bin/env python3
"""Tests for clipboard selection request handling."""
from unittest.mock import MagicMock

import pytest
from Xlib import X, Xatom

from lanclip.clipboard_selection import handle_selection_request, process_pending_events

TARGETS, UTF8 = 100, 101


@pytest.fixture
def mock_display() -> MagicMock:
    """Create a mock X11 display."""
    display = MagicMock()
    atom_map = {"TARGETS": TARGETS, "UTF8_STRING": UTF8}
    display.intern_atom.side_effect = lambda name: atom_map.get(name, 999)
    return display


@pytest.fixture
def mock_event() -> MagicMock:
    """Create a mock SelectionRequest event."""
    event = MagicMock()
    event.requestor.id = 12345
    event.property = 200
    event.selection = 300
    event.time = 987654321
    return event


def notify_property(mock_event: MagicMock) -> int:
    """Property reported in the SelectionNotify sent to the requestor."""
    return mock_event.requestor.send_event.call_args.args[0].property


def test_targets_lists_text_targets(mock_display: MagicMock, mock_event: MagicMock) -> None:
    """Test TARGETS lists TARGETS, UTF8_STRING and STRING only."""
    mock_event.target = TARGETS
    handle_selection_request(mock_display, mock_event, b"hello")
    args = mock_event.requestor.change_property.call_args.args
    assert args == (200, Xatom.ATOM, 32, [TARGETS, UTF8, Xatom.STRING])
    assert notify_property(mock_event) == 200
    mock_display.flush.assert_called_once()


@pytest.mark.parametrize(
    ("target", "expected"),
    [
        (UTF8, "héllo €".encode("utf-8")),
        (Xatom.STRING, "héllo ?".encode("latin-1")),
    ],
)
def test_text_targets_get_content(
    mock_display: MagicMock, mock_event: MagicMock, target: int, expected: bytes
) -> None:
    """Test UTF8_STRING gets UTF-8 and STRING gets Latin-1 bytes."""
    mock_event.target = target
    handle_selection_request(mock_display, mock_event, "héllo €".encode("utf-8"))
    mock_event.requestor.change_property.assert_called_once_with(200, target, 8, expected)
    assert notify_property(mock_event) == 200


def test_unsupported_target_is_refused(mock_display: MagicMock, mock_event: MagicMock) -> None:
    """Test any other target gets a SelectionNotify with no property."""
    mock_event.target = 555
    handle_selection_request(mock_display, mock_event, b"hello")
    mock_event.requestor.change_property.assert_not_called()
    assert notify_property(mock_event) == X.NONE


def test_process_pending_events_filters_and_keeps_deferred_first() -> None:
    """Test deferred events come first and irrelevant events are dropped."""
    display = MagicMock()
    deferred = [MagicMock(type=X.SelectionClear)]
    request = MagicMock(type=X.SelectionRequest)
    noise = MagicMock(type=X.PropertyNotify)
    display.pending_events.side_effect = [2, 1, 0]
    display.next_event.side_effect = [noise, request]
    events = process_pending_events(display, deferred)
    assert events[0].type == X.SelectionClear
    assert events[1] is request
    assert len(events) == 2
    assert deferred == []
