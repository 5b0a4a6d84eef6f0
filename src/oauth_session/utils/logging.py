"""Logging helpers shared across the package."""

from __future__ import annotations


def mask_sensitive(value: str | None, keep_chars: int = 4) -> str:
    """Return *value* with everything but the first ``keep_chars`` masked.

    Used for bearer tokens, authorization codes and code challenges so that
    log lines stay correlatable without exposing the secret.
    """
    if not value:
        return ""
    if len(value) <= keep_chars:
        return "*" * len(value)
    return value[:keep_chars] + "*" * min(len(value) - keep_chars, 8)
