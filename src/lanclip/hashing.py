#!/usr/bin/env python3
"""
SHA-256 fingerprints for clipboard text.

Fingerprints are how lanclip decides that two clipboard values are the
same. They drive deduplication, echo suppression (a device reporting back
what it was just sent) and the conflict window. They are never used for
security, only for equality.

This module provides:
- compute_hash(): SHA-256 hex digest of clipboard content
- EMPTY_HASH: the fingerprint of empty or missing content
- HashState: client-side last sent / last received tracking
"""
import hashlib

from lanclip.hash_state import HashState

__all__ = ["EMPTY_HASH", "HashState", "compute_hash"]

# Fingerprint for empty or missing content. Never produced by a real digest
# of non-empty input.
EMPTY_HASH: str = "0" * 64


def compute_hash(content: str | bytes | None) -> str:
    """
    Compute the SHA-256 fingerprint of clipboard content.

    Text is encoded as UTF-8 first, so the same string yields the same
    fingerprint on every device regardless of where it was computed.

    Args:
        content: Clipboard text, raw bytes, or None.

    Returns:
        Hexadecimal SHA-256 digest, or EMPTY_HASH for empty/None content.
    """
    if not content:
        return EMPTY_HASH
    if isinstance(content, str):
        content = content.encode("utf-8", "surrogatepass")
    return hashlib.sha256(content).hexdigest()
