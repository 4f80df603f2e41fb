#!/usr/bin/env python3
"""Default tunables for the lanclip server.

Durations are in seconds unless the name says otherwise. The CLI and the
settings event speak milliseconds for the polling interval, matching what
device front ends send.
"""

# Default TCP port and bind address for the relay server.
DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 3000

# Minimum time between two accepted updates. Faster arrivals are coalesced.
MIN_SYNC_INTERVAL: float = 0.05

# A fingerprint seen again within this window is a ping-pong duplicate.
CONFLICT_WINDOW: float = 1.0

# Conflict entries older than this are dropped by the maintenance tick.
CONFLICT_RETENTION: float = 5.0

# How often the maintenance tick runs.
MAINTENANCE_INTERVAL: float = 10.0

# Local clipboard sampling interval, and the lowest value accepted.
POLL_INTERVAL_MS: int = 100
MIN_POLL_INTERVAL_MS: int = 50

# OS clipboard calls slower than this are treated as failures.
CLIPBOARD_IO_TIMEOUT: float = 0.5

# Content filter and history limits (characters).
MAX_CONTENT_LENGTH: int = 50_000
HISTORY_SIZE: int = 10
HISTORY_CONTENT_LIMIT: int = 1000
HISTORY_PREVIEW_LENGTH: int = 100

# Per-device outbound queue depth and drain timeout.
SEND_QUEUE_SIZE: int = 64
SEND_TIMEOUT: float = 5.0

# Source ids that do not belong to a connected device.
SOURCE_LOCAL: str = "local"
SOURCE_API: str = "api"
SOURCE_HISTORY: str = "history"
SOURCE_SERVER: str = "server"
