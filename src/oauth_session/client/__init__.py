"""Session client core package.

This namespace hosts the **router-agnostic** building blocks of the session
layer.

Sub-modules
-----------
errors
    Exception types (normalized call failures, refresh failures…).
http
    Single round-trip JSON call engine on top of ``httpx``.
api
    Authenticated call orchestrator (bearer injection, refresh, replay).
session
    Observable current-user state and silent login.
events
    Fire-and-forget observer channels.
redirect
    Encoding of the post-login redirect target.
sso
    PKCE login URL construction.
models
    Records exchanged with the backend.
log_utils
    Session-tagged ``LoggerAdapter`` (user id prefix and route only).

All public objects are re-exported here for convenience.
"""

from __future__ import annotations

from .errors import (  # noqa: F401
    UNAUTHORIZED_STATUS,
    CallError,
    ProtocolViolationError,
    RefreshError,
    SessionClientError,
)
from .models import LoginResult, User  # noqa: F401
from .events import EventChannel  # noqa: F401
from .http import HttpCallEngine  # noqa: F401
from .api import ApiClient  # noqa: F401
from .session import SessionState  # noqa: F401
from .redirect import (  # noqa: F401
    InvalidRedirectTargetError,
    decode_redirect_target,
    encode_redirect_target,
)
from .sso import build_login_url, login_using_sso  # noqa: F401
from .log_utils import get_session_logger  # noqa: F401

__all__ = [
    # errors
    "UNAUTHORIZED_STATUS",
    "CallError",
    "ProtocolViolationError",
    "RefreshError",
    "SessionClientError",
    # models
    "LoginResult",
    "User",
    # call stack
    "EventChannel",
    "HttpCallEngine",
    "ApiClient",
    "SessionState",
    # redirect target
    "InvalidRedirectTargetError",
    "decode_redirect_target",
    "encode_redirect_target",
    # sso
    "build_login_url",
    "login_using_sso",
    # logging helpers
    "get_session_logger",
]
