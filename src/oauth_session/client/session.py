"""Observable session state: who is the current user?

One :class:`SessionState` exists per :class:`~oauth_session.context.SessionContext`.
Changes to the current user are broadcast to subscribers in registration
order (fire-and-forget, see :mod:`oauth_session.client.events`).
"""

from __future__ import annotations

import logging

from oauth_session.client.api import ApiClient
from oauth_session.client.events import EventChannel, Subscriber
from oauth_session.client.models import User

_LOG = logging.getLogger("oauth-session.client.session")


class SessionState:
    """Holds the current :class:`User` (or ``None``) for one client."""

    def __init__(self, api: ApiClient) -> None:
        self._api = api
        self._current_user: User | None = None
        self._silent_login_in_progress = False
        self.changes = EventChannel("current-user")

    @property
    def current_user(self) -> User | None:
        return self._current_user

    @property
    def is_logged_in(self) -> bool:
        return self._current_user is not None

    @property
    def is_silently_logging_in(self) -> bool:
        return self._silent_login_in_progress

    def subscribe(self, callback: Subscriber) -> None:
        """Call ``callback(user_or_none)`` after every change of the current user."""
        self.changes.subscribe(callback)

    def set_current_user(self, user: User | None) -> None:
        if user is self._current_user:
            return
        self._current_user = user
        _LOG.debug("Current user changed logged_in=%s", user is not None)
        self.changes.emit(user)

    def clear(self) -> None:
        self.set_current_user(None)

    async def silent_login(self) -> None:
        """Restore the session from the backend without surfacing failures.

        This is a background probe: any failure leaves the state untouched.
        """
        self._silent_login_in_progress = True
        try:
            user = await self._api.fetch_current_user()
        except Exception as exc:  # silent probe: every failure is ignored
            _LOG.debug("Silent login did not restore a session: %r", exc)
        else:
            self.set_current_user(user)
        finally:
            self._silent_login_in_progress = False
