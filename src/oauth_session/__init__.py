"""Client-side OAuth2 session layer.

Wraps a JSON backend with bearer-credential injection and one-shot refresh,
keeps the current user observable, and guards navigation based on it.
Runs on :mod:`asyncio`.

>>> from oauth_session import OAuth2Options, SessionClientOptions, SessionPlugin
>>> from oauth_session.routing import HistoryRouter
>>> plugin = SessionPlugin.from_options(
...     SessionClientOptions(
...         base_url="https://api.example.com",
...         oauth2=OAuth2Options(login_page_url="https://sso.example.com/login", client_id="web"),
...     )
... )
>>> plugin.install(HistoryRouter({"/profile": {"requiresAuth": True}}))
"""

from __future__ import annotations

from .client import (  # noqa: F401
    ApiClient,
    CallError,
    ProtocolViolationError,
    RefreshError,
    SessionClientError,
    SessionState,
    User,
)
from .config import (  # noqa: F401
    ConfigurationError,
    OAuth2Options,
    RouteAuthOptions,
    SessionClientOptions,
)
from .context import SessionContext  # noqa: F401
from .plugin import SessionPlugin  # noqa: F401

__all__ = [
    "ApiClient",
    "CallError",
    "ProtocolViolationError",
    "RefreshError",
    "SessionClientError",
    "SessionState",
    "User",
    "ConfigurationError",
    "OAuth2Options",
    "RouteAuthOptions",
    "SessionClientOptions",
    "SessionContext",
    "SessionPlugin",
]
