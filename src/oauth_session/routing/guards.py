"""Navigation guards driven by the session state.

Guards are intentionally thin:

1. Read the navigation target (and origin).
2. Delegate calls to :class:`~oauth_session.client.api.ApiClient`.
3. Return a :class:`NavigationDecision`; failures become redirects and never
   escape a guard.

SECURITY NOTE
-------------
Authorization codes and code challenges are only logged masked.  Redirect
targets restored after login must decode to a site-relative path.
"""

from __future__ import annotations

import logging

from oauth_session.client.api import ApiClient
from oauth_session.client.errors import CallError
from oauth_session.client.log_utils import get_session_logger
from oauth_session.client.models import User
from oauth_session.client.redirect import (
    REDIRECT_QUERY_PARAM,
    InvalidRedirectTargetError,
    decode_redirect_target,
    encode_redirect_target,
)
from oauth_session.client.session import SessionState
from oauth_session.config import RouteAuthOptions
from oauth_session.routing.navigation import (
    NavigationDecision,
    RouteLocation,
    with_query_param,
)
from oauth_session.utils.logging import mask_sensitive

_LOGGER_NAME = "oauth-session.routing.guards"
_LOG = logging.getLogger(_LOGGER_NAME)

ROOT_ROUTE = "/"


class NavigationGuards:
    """Logout, OAuth2 callback and protected-route guards for one session."""

    def __init__(
        self,
        api: ApiClient,
        session: SessionState,
        routes_auth: RouteAuthOptions | None = None,
    ) -> None:
        self._api = api
        self._session = session
        self._options = routes_auth or RouteAuthOptions()

    @property
    def options(self) -> RouteAuthOptions:
        return self._options

    def is_protected(self, route: RouteLocation) -> bool:
        return bool(route.meta and route.meta.get(self._options.auth_flag_key))

    # ------------------------------------------------------------------ #
    # Route guards                                                       #
    # ------------------------------------------------------------------ #
    async def logout_guard(
        self, to: RouteLocation, from_: RouteLocation | None
    ) -> NavigationDecision:
        log = get_session_logger(
            _LOGGER_NAME, user=self._session.current_user, route=to.path
        )
        try:
            await self._api.logout()
        except CallError as exc:
            if exc.is_unauthorized:
                # backend session already gone; stay where we were
                log.info("Logout rejected with 401; treating as logged out")
                return NavigationDecision.redirect(from_.full_path if from_ else ROOT_ROUTE)
            log.warning("Logout failed kind=%s status=%s", exc.kind, exc.status)
            return NavigationDecision.redirect(ROOT_ROUTE)
        except Exception:  # broad: mapped to a redirect
            log.warning("Logout failed unexpectedly", exc_info=True)
            return NavigationDecision.redirect(ROOT_ROUTE)

        self._session.clear()
        log.info("Logged out")
        return NavigationDecision.redirect(self._options.post_logout_redirect_route)

    async def oauth2_callback_guard(
        self, to: RouteLocation, from_: RouteLocation | None
    ) -> NavigationDecision:
        error = to.query.get("error")
        if error:
            _LOG.info("Authorization server returned error=%s", error)
            return NavigationDecision.redirect(
                with_query_param(self._options.login_error_redirect_route, "error", error)
            )

        code = to.query.get("code")
        code_challenge = to.query.get("code_challenge")
        if not code or not code_challenge:
            _LOG.warning("OAuth2 callback without code or code_challenge")
            return NavigationDecision.redirect(ROOT_ROUTE)

        try:
            user = await self._api.login_using_auth_code(code, code_challenge)
        except Exception as exc:  # broad: mapped to a redirect
            _LOG.warning(
                "Code exchange failed code=%s: %r", mask_sensitive(code), exc
            )
            return NavigationDecision.redirect(ROOT_ROUTE)

        self._session.set_current_user(user)
        return NavigationDecision.redirect(self._options.post_login_redirect_route)

    def protected_route_guard(
        self, to: RouteLocation, from_: RouteLocation | None
    ) -> NavigationDecision:
        return protected_route_decision(
            to, logged_in=self._session.is_logged_in, options=self._options
        )

    # ------------------------------------------------------------------ #
    # Session reactions                                                  #
    # ------------------------------------------------------------------ #
    def session_change_target(
        self, user: User | None, current: RouteLocation
    ) -> str | None:
        """Return where to navigate after the current user changed, if anywhere."""
        if user is None:
            return self._options.post_logout_redirect_route

        encoded = current.query.get(REDIRECT_QUERY_PARAM)
        if encoded:
            try:
                return decode_redirect_target(encoded)
            except InvalidRedirectTargetError:
                _LOG.warning("Ignoring undecodable redirect target on %s", current.path)

        if not self.is_protected(current):
            return None
        return self._options.post_login_redirect_route

    def handle_refresh_failure(self) -> None:
        """Drop the current user once the credential cannot be refreshed."""
        if self._session.is_logged_in:
            _LOG.info("Credential refresh failed; clearing session")
            self._session.clear()


def protected_route_decision(
    to: RouteLocation, *, logged_in: bool, options: RouteAuthOptions
) -> NavigationDecision:
    """Allow *to* unless it is protected and nobody is logged in.

    Blocked navigations go to the unauthorized route with the full original
    path carried in the ``redirect`` query parameter.
    """
    if not to.meta or not to.meta.get(options.auth_flag_key):
        return NavigationDecision.allow()

    if logged_in:
        return NavigationDecision.allow()

    _LOG.debug("Blocked unauthenticated navigation to %s", to.path)
    return NavigationDecision.redirect(
        with_query_param(
            options.unauthorized_redirect_route,
            REDIRECT_QUERY_PARAM,
            encode_redirect_target(to.full_path),
        )
    )
