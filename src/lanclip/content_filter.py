#!/usr/bin/env python3
"""Content filtering for clipboard text.

Clipboard text that looks like a credential, a card number or an address is
kept on the machine it was copied on. Oversized text is dropped as well so a
stray multi-megabyte paste cannot flood every connected device.

The filter is a pure predicate. It reports why content was rejected and
leaves logging and notification to the caller.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from lanclip.constants import MAX_CONTENT_LENGTH


class RejectReason(str, Enum):
    """Why an update was not delivered."""

    EMPTY = "empty"
    NOT_TEXT = "not_text"
    TOO_LONG = "too_long"
    PASSWORD = "password"
    SECRET = "secret"
    TOKEN = "token"
    KEY_ASSIGNMENT = "key_assignment"
    API_KEY = "api_key"
    CARD_NUMBER = "card_number"
    EMAIL = "email"


@dataclass(frozen=True)
class SensitivePattern:
    """A named rule that marks matching text as sensitive."""

    reason: RejectReason
    pattern: re.Pattern[str]

    def matches(self, content: str) -> bool:
        return self.pattern.search(content) is not None


DEFAULT_PATTERNS: tuple[SensitivePattern, ...] = (
    SensitivePattern(RejectReason.PASSWORD, re.compile(r"password", re.IGNORECASE)),
    SensitivePattern(RejectReason.SECRET, re.compile(r"secret", re.IGNORECASE)),
    SensitivePattern(RejectReason.TOKEN, re.compile(r"token", re.IGNORECASE)),
    SensitivePattern(RejectReason.KEY_ASSIGNMENT, re.compile(r"key\s*[:=]", re.IGNORECASE)),
    SensitivePattern(RejectReason.API_KEY, re.compile(r"api[_-]?key", re.IGNORECASE)),
    SensitivePattern(RejectReason.CARD_NUMBER, re.compile(r"[0-9]{16}")),
    SensitivePattern(
        RejectReason.EMAIL,
        re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    ),
)


class ContentFilter:
    """Classify clipboard text as acceptable or rejected.

    Attributes:
        max_length: Longest accepted content, in characters.
        patterns: Sensitive-content rules, checked in order.
    """

    def __init__(
        self,
        max_length: int = MAX_CONTENT_LENGTH,
        patterns: tuple[SensitivePattern, ...] = DEFAULT_PATTERNS,
    ) -> None:
        self.max_length = max_length
        self.patterns = patterns

    def check(self, content: object) -> RejectReason | None:
        """Return the first reason content is rejected, or None if it passes.

        Args:
            content: Candidate clipboard payload.

        Returns:
            A RejectReason, or None when the content may be synchronized.
        """
        if not isinstance(content, str):
            return RejectReason.NOT_TEXT
        if not content:
            return RejectReason.EMPTY
        if len(content) > self.max_length:
            return RejectReason.TOO_LONG
        for rule in self.patterns:
            if rule.matches(content):
                return rule.reason
        return None

    def is_rejected(self, content: object) -> bool:
        """Check whether content must not be synchronized."""
        return self.check(content) is not None
