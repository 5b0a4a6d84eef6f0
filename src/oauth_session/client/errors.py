"""Exception types raised by the session client.

Only lightweight, **data-carrying** exceptions live here so that routing and
HTTP adapter layers can turn them into redirects or JSON payloads.

Hierarchy::

    SessionClientError
    ├── CallError               – normalized transport / server failure
    │   └── RefreshError        – the one-shot credential refresh failed
    └── ProtocolViolationError  – the call engine broke its contract
"""

from __future__ import annotations

from typing import Any, Final

UNAUTHORIZED_STATUS: Final[int] = 401

NETWORK_ERROR_KIND: Final[str] = "NetworkError"
UNEXPECTED_ERROR_MESSAGE: Final[str] = "An unexpected error occurred."


class SessionClientError(RuntimeError):
    """Base class for every failure surfaced by :mod:`oauth_session`."""


class CallError(SessionClientError):
    """Normalized failure of a single API call.

    ``kind`` names the failure class: the transport exception name for
    connectivity problems, or the ``name`` reported by the backend for non-2xx
    responses.  ``status`` is only set when the backend answered.
    """

    def __init__(self, *, kind: str, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self._kind = kind
        self._message = message
        self._status = status

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def message(self) -> str:
        return self._message

    @property
    def status(self) -> int | None:
        return self._status

    @property
    def is_unauthorized(self) -> bool:
        return self._status == UNAUTHORIZED_STATUS

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serialisable payload **without secrets**."""
        payload: dict[str, Any] = {"name": self._kind, "message": self._message}
        if self._status is not None:
            payload["status"] = self._status
        return payload

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self._kind!r}, "
            f"message={self._message!r}, status={self._status!r})"
        )


class RefreshError(CallError):
    """Raised when the credential refresh attempt itself failed.

    Carries the refresh call's kind, message and status; the original
    :class:`CallError` is available as ``__cause__``.
    """

    @classmethod
    def from_call_error(cls, error: CallError) -> "RefreshError":
        return cls(kind=error.kind, message=error.message, status=error.status)


class ProtocolViolationError(SessionClientError):
    """The call engine surfaced something other than a :class:`CallError`."""

    def __init__(self, message: str = UNEXPECTED_ERROR_MESSAGE) -> None:
        super().__init__(message)
