"""Utility functions for reading configuration from the environment."""

import logging
import os
from typing import Final, Tuple

logger = logging.getLogger("oauth-session.utils.environment")

ENV_PREFIX: Final[str] = "OAUTH_SESSION_"

_TRUTHY: Final[Tuple[str, ...]] = ("true", "1", "yes", "y", "on")


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in _TRUTHY


def env_str(key: str, default: str | None = None) -> str | None:
    """
    Return ``${OAUTH_SESSION_KEY}`` stripped of whitespace.

    Empty values are treated as unset so that ``KEY=`` in a ``.env`` file
    falls back to *default*.
    """
    raw = os.getenv(ENV_PREFIX + key)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def env_bool(key: str, default: bool) -> bool:
    """
    Return the boolean value of ``${OAUTH_SESSION_KEY}``.

    Any of ``true/1/yes/y/on`` (case-insensitive) enables the flag; any other
    explicitly set value disables it.
    """
    raw = os.getenv(ENV_PREFIX + key)
    if raw is None:
        return default
    return _truthy(raw)


def env_float(key: str, default: float) -> float:
    raw = env_str(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(
            "Ignoring non-numeric %s%s=%r; using default %s",
            ENV_PREFIX,
            key,
            raw,
            default,
        )
        return default
