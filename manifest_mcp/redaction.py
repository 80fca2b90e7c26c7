"""Scrub secrets from diagnostic payloads before they leave the process."""

from __future__ import annotations

from typing import Any, FrozenSet, Mapping

SENSITIVE_FIELDS: FrozenSet[str] = frozenset(
    {
        "mnemonic",
        "privatekey",
        "private_key",
        "secret",
        "password",
        "seed",
        "key",
        "token",
        "apikey",
        "api_key",
    }
)

REDACTED = "[REDACTED]"
REDACTED_MNEMONIC = "[REDACTED - possible mnemonic]"
MAX_DEPTH_MARKER = "[max depth exceeded]"
MAX_DEPTH = 10
MNEMONIC_WORD_COUNTS = (12, 24)


def looks_like_mnemonic(value: str) -> bool:
    return len(value.split()) in MNEMONIC_WORD_COUNTS


def sanitize_for_logging(value: Any, depth: int = 0) -> Any:
    """
    Return a redacted copy of ``value``.

    Sensitive mapping keys keep their name but lose their value; strings of
    exactly 12 or 24 words are treated as mnemonics and replaced wholesale.
    Recursion stops past ``MAX_DEPTH`` levels, which also bounds cyclic input.
    """
    if depth > MAX_DEPTH:
        return MAX_DEPTH_MARKER

    if value is None:
        return None

    if isinstance(value, str):
        if looks_like_mnemonic(value):
            return REDACTED_MNEMONIC
        return value

    if isinstance(value, (list, tuple)):
        return [sanitize_for_logging(item, depth + 1) for item in value]

    if isinstance(value, Mapping):
        sanitized = {}
        for key, item in value.items():
            if str(key).lower() in SENSITIVE_FIELDS:
                sanitized[key] = REDACTED
            else:
                sanitized[key] = sanitize_for_logging(item, depth + 1)
        return sanitized

    return value
