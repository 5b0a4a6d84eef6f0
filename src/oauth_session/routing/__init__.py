"""Navigation guard layer.

Sub-modules
-----------
navigation
    Route locations, guard decisions and the abstract ``Router`` contract.
guards
    Logout, OAuth2 callback and protected-route guards plus session reactions.
router
    In-memory ``HistoryRouter`` implementation.
asgi
    Starlette routes and middleware exposing the guards over HTTP (import it
    explicitly; it is not re-exported here).
"""

from __future__ import annotations

from .navigation import NavigationDecision, RouteLocation, Router  # noqa: F401
from .guards import NavigationGuards  # noqa: F401
from .router import HistoryRouter, RedirectLoopError  # noqa: F401

__all__ = [
    "NavigationDecision",
    "RouteLocation",
    "Router",
    "NavigationGuards",
    "HistoryRouter",
    "RedirectLoopError",
]
