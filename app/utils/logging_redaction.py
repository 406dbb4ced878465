"""
Logging redaction helpers.
Redacts sensitive tokens/keys from log messages.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable


_PATTERNS: Iterable[tuple[re.Pattern, str]] = (
    # Authorization: Bearer <token>
    (re.compile(r"(Bearer\s+)([A-Za-z0-9\-\._:]+)"), r"\1[REDACTED]"),
    # Circle API keys: TEST_API_KEY:<id>:<secret> / LIVE_API_KEY:...
    (re.compile(r"\b(TEST|LIVE)_API_KEY:[A-Za-z0-9]+:[A-Za-z0-9]+"), r"\1_API_KEY:[REDACTED]"),
    # Gemini key passed as a query parameter
    (re.compile(r"([?&]key=)([A-Za-z0-9\-_]+)"), r"\1[REDACTED]"),
    # Entity secret / ciphertext key/value
    (re.compile(r"(?i)(entity[_-]?secret(?:[_-]?ciphertext)?)\s*[:=]\s*([A-Za-z0-9+/=\-_]+)"), r"\1=[REDACTED]"),
    # Generic API key/secret key/value
    (re.compile(r"(?i)(api[_-]?key|api[_-]?secret)\s*[:=]\s*([A-Za-z0-9\-\._]+)"), r"\1=[REDACTED]"),
)


def redact_message(message: str) -> str:
    redacted = message
    for pattern, replacement in _PATTERNS:
        redacted = pattern.sub(replacement, redacted)
    return redacted


class RedactingFilter(logging.Filter):
    """Filter that redacts sensitive data from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
            redacted = redact_message(message)
            record.msg = redacted
            record.args = ()
        except Exception:
            # If redaction fails, allow log through unmodified
            pass
        return True


def install_redaction_filter() -> None:
    root = logging.getLogger()
    # Avoid duplicate filters
    for existing in root.filters:
        if isinstance(existing, RedactingFilter):
            return
    root.addFilter(RedactingFilter())
