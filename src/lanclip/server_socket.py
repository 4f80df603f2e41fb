#!/usr/bin/env python3
"""Server socket utilities for lanclip.

This module provides helpers around the relay's TCP listener:
- Discovering the LAN address devices should connect to
- Printing the startup message
"""

from __future__ import annotations

import socket
import sys

# Any routable address works; connecting a UDP socket sends no packets.
PROBE_ADDRESS: tuple[str, int] = ("10.255.255.255", 1)


def get_local_ip() -> str:
    """Return the LAN address of this host.

    Connects a UDP socket towards a non-local address and reads back the
    source address the kernel picked. Falls back to loopback when the host
    has no route.

    Returns:
        Dotted quad IPv4 address.
    """
    probe = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        probe.connect(PROBE_ADDRESS)
        return probe.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        probe.close()


def print_startup_message(host: str, port: int) -> None:
    """Print server startup message to stderr.

    Prints the bound address and the address devices on the LAN should use.

    Args:
        host: Address the server is bound to.
        port: TCP port the server listens on.
    """
    print(f"Listening on {host}:{port}", file=sys.stderr)
    if host in ("0.0.0.0", ""):
        print(f"Devices can connect to {get_local_ip()}:{port}", file=sys.stderr)
