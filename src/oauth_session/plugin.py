"""Wiring of the session layer into a router.

:meth:`SessionPlugin.install` registers:

* ``/logout`` and ``/oauth2/cb`` routes guarded by the logout and callback
  guards;
* the global protected-route guard;
* the session-change reaction (restore the saved destination after login,
  leave for the post-logout route after logout);
* the refresh-failure reaction (clear the session).

:meth:`SessionPlugin.start` performs the initial silent login.  Schedule it as
a background task to keep start-up non-blocking.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from oauth_session.client.events import Subscriber
from oauth_session.client.http import HttpCallEngine
from oauth_session.client.models import User
from oauth_session.client.sso import login_using_sso
from oauth_session.config import SessionClientOptions
from oauth_session.context import SessionContext
from oauth_session.routing.navigation import Router

_LOG = logging.getLogger("oauth-session.plugin")

LOGOUT_ROUTE = "/logout"
OAUTH2_CALLBACK_ROUTE = "/oauth2/cb"


class PluginNotInstalledError(RuntimeError):
    """Raised when a router-dependent operation runs before :meth:`install`."""


class SessionPlugin:
    """Public surface of the session layer bound to one router."""

    def __init__(self, context: SessionContext) -> None:
        self.context = context
        self._router: Router | None = None

    @classmethod
    def from_options(
        cls,
        options: SessionClientOptions,
        *,
        engine: HttpCallEngine | None = None,
    ) -> "SessionPlugin":
        return cls(SessionContext.create(options, engine=engine))

    @property
    def router(self) -> Router:
        if self._router is None:
            raise PluginNotInstalledError("SessionPlugin.install() has not been called")
        return self._router

    # ------------------------------------------------------------------ #
    # Installation                                                       #
    # ------------------------------------------------------------------ #
    def install(self, router: Router) -> None:
        ctx = self.context
        guards = ctx.guards
        self._router = router

        if ctx.options.base_url:
            ctx.api.set_base_url(ctx.options.base_url)

        router.add_route(LOGOUT_ROUTE, before_enter=guards.logout_guard)
        router.add_route(OAUTH2_CALLBACK_ROUTE, before_enter=guards.oauth2_callback_guard)
        router.before_each(guards.protected_route_guard)

        ctx.session.subscribe(self._on_current_user_change)
        ctx.api.on_cannot_refresh_token(guards.handle_refresh_failure)
        _LOG.debug("Session plugin installed")

    async def start(self) -> None:
        """Try to restore an existing backend session."""
        await self.context.session.silent_login()

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    async def call(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        json: Any = None,
        authenticated: bool = True,
        with_refresh: bool = True,
    ) -> Any:
        return await self.context.api.call(
            path,
            method=method,
            headers=headers,
            json=json,
            authenticated=authenticated,
            with_refresh=with_refresh,
        )

    async def login_using_sso(self) -> None:
        await login_using_sso(self.context.api, self.context.options, self.router)

    @property
    def current_user(self) -> User | None:
        return self.context.session.current_user

    @property
    def is_logged_in(self) -> bool:
        return self.context.session.is_logged_in

    @property
    def is_silently_logging_in(self) -> bool:
        return self.context.session.is_silently_logging_in

    def on_current_user_change(self, callback: Subscriber) -> None:
        self.context.session.subscribe(callback)

    # ---------------- internal helpers --------------------------------- #
    async def _on_current_user_change(self, user: User | None) -> None:
        router = self.router
        target = self.context.guards.session_change_target(user, router.current_route)
        if target is None:
            return
        await router.push(target)
