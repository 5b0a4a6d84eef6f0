"""Redirect-target helpers for the login round trip.

When an unauthenticated user hits a protected route, the full original path
(including its own query string and fragment) is carried through the login
flow in a single ``redirect`` query parameter.  The value is base64-url
encoded **without padding**, so it contains no ``/``, ``?``, ``&``, ``=`` or
``#`` that could be mistaken for a path or query separator.

Decoding also accepts the standard base64 alphabet and padded values, so
targets produced by browser ``btoa()`` keep working.
"""

from __future__ import annotations

import base64
import binascii
from typing import Final

REDIRECT_QUERY_PARAM: Final[str] = "redirect"


class InvalidRedirectTargetError(ValueError):
    """Raised when a redirect parameter cannot be decoded to a path."""


def encode_redirect_target(path: str) -> str:
    """Encode *path* into a URL-safe redirect token."""
    return base64.urlsafe_b64encode(path.encode("utf-8")).rstrip(b"=").decode("ascii")


def decode_redirect_target(value: str) -> str:
    """Decode a token produced by :func:`encode_redirect_target`.

    Raises
    ------
    InvalidRedirectTargetError
        If *value* is not valid base64 text or does not decode to a
        site-relative path.
    """
    normalized = value.strip().replace("+", "-").replace("/", "_").rstrip("=")
    pad_len = (-len(normalized)) % 4
    try:
        path = base64.urlsafe_b64decode(normalized + "=" * pad_len).decode("utf-8")
    except (ValueError, binascii.Error):
        raise InvalidRedirectTargetError("redirect target cannot be decoded") from None

    # only site-relative targets; "//host" would leave the application
    if not path.startswith("/") or path.startswith("//"):
        raise InvalidRedirectTargetError("redirect target is not a local path")
    return path
