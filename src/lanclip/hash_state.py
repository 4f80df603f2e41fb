#!/usr/bin/env python3
"""
Echo suppression for a device client.

Values pushed by the relay are written into the device's own clipboard,
where the next poll would pick them up as a fresh local copy. HashState
remembers the fingerprint of the last value sent and the last value
received so the poll loop only forwards genuinely new content.

Only the newest value in either direction is suppressed: recording a send
forgets the last received value and the other way round. Copying a value
again after a different one arrived from the relay therefore sends it.

record_received() has to run before the local clipboard write; otherwise
a poll that lands between the two would bounce the value back.
"""
from dataclasses import dataclass


@dataclass
class HashState:
    """
    Last sent and last received fingerprints of one connection.

    Attributes:
        last_sent_hash: Fingerprint of the last value sent to the relay.
        last_received_hash: Fingerprint of the last value applied from it.
    """

    last_sent_hash: str | None = None
    last_received_hash: str | None = None

    def should_send(self, current_hash: str) -> bool:
        """Return False when current_hash is a repeat or an echo."""
        return current_hash not in (self.last_sent_hash, self.last_received_hash)

    def record_sent(self, hash_value: str) -> None:
        self.last_sent_hash = hash_value
        self.last_received_hash = None

    def record_received(self, hash_value: str) -> None:
        self.last_received_hash = hash_value
        self.last_sent_hash = None

    def clear(self) -> None:
        """Forget both fingerprints; called for every new connection."""
        self.last_sent_hash = self.last_received_hash = None
