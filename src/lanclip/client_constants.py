#!/usr/bin/env python3
"""Constants for client mode.

These constants control where a device client connects by default and the
exponential backoff behavior for reconnection when the connection to the
relay is lost.
"""

# Relay address used when --host is not given in client mode.
DEFAULT_CONNECT_HOST: str = "127.0.0.1"

# Retry parameters for exponential backoff reconnection.
# Initial delay between connection attempts in seconds.
INITIAL_WAIT: float = 1.0

# Maximum delay between connection attempts in seconds.
MAX_WAIT: float = 60.0

# Multiplier for exponential backoff (delay = initial * multiplier^attempt).
WAIT_MULTIPLIER: float = 2.0

# Seconds an active session gets to say goodbye once shutdown is requested.
SHUTDOWN_GRACE: float = 1.0
