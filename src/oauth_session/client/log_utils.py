"""Session-scoped logging.

:func:`get_session_logger` returns a :class:`logging.LoggerAdapter` that
prefixes every message with a short ``[user=… route=…]`` tag and attaches the
same values as record extras for structured handlers.  Only the user id
(first 6 chars) and the route are ever attached; nothing else from the user
record reaches the logs.

>>> log = get_session_logger("oauth-session.routing.guards", user=user, route="/logout")
>>> log.info("Logged out")
INFO oauth-session.routing.guards [user=7f1c2a route=/logout] Logged out
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping

from oauth_session.client.models import User

_USER_ID_CHARS = 6


class SessionLogAdapter(logging.LoggerAdapter):
    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        # call-site extras win over the session tag
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        tag = " ".join(f"{key}={value}" for key, value in self.extra.items())
        return (f"[{tag}] {msg}" if tag else msg), kwargs


def get_session_logger(
    name: str = "oauth-session",
    *,
    user: User | None = None,
    route: str | None = None,
) -> SessionLogAdapter:
    context: dict[str, str] = {}
    if user is not None and user.id:
        context["user"] = user.id[:_USER_ID_CHARS]
    if route:
        context["route"] = route
    return SessionLogAdapter(logging.getLogger(name), context)
