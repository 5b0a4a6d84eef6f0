"""Starlette adapter for the navigation guards.

Every browser gets its own :class:`~oauth_session.context.SessionContext`
(own credential, own user, own backend cookie jar), looked up from an opaque
visitor cookie.  A context is only created when a visitor starts a login
(``/login/sso``) or comes back from one (``/oauth2/cb``); anonymous traffic
never allocates one.

Handlers are intentionally thin:

1. Resolve the visitor's context from the cookie.
2. Turn the HTTP request into a :class:`RouteLocation` and delegate to the
   context's :class:`~oauth_session.routing.guards.NavigationGuards`.
3. Return a ``RedirectResponse`` (303) to the decided target.

The navigation origin used by the logout guard is taken from a same-origin
``Referer`` header when present.

SECURITY NOTE
-------------
No credentials, authorization codes, code challenges or visitor ids are
logged unmasked.  The visitor cookie is ``HttpOnly`` and ``SameSite=Lax``.
"""

from __future__ import annotations

import logging
import secrets
from typing import TYPE_CHECKING, Any, Callable, Mapping
from urllib.parse import urlsplit

from cachetools import TTLCache
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from oauth_session.client.errors import CallError, ProtocolViolationError
from oauth_session.client.http import HttpCallEngine
from oauth_session.client.sso import build_sso_login_url
from oauth_session.config import SessionClientOptions
from oauth_session.context import SessionContext
from oauth_session.routing.guards import protected_route_decision
from oauth_session.routing.navigation import NavigationDecision, RouteLocation
from oauth_session.utils.logging import mask_sensitive

if TYPE_CHECKING:  # pragma: no cover
    from starlette.applications import Starlette

_LOG = logging.getLogger("oauth-session.routing.asgi")

VISITOR_COOKIE = "oauth_session_visitor"


class VisitorSessions:
    """Per-visitor session contexts keyed by the visitor cookie.

    Contexts live in a ``TTLCache``; a visitor idle for longer than
    ``ttl_seconds`` (or evicted once ``max_visitors`` is reached) starts over
    as anonymous.
    """

    def __init__(
        self,
        options: SessionClientOptions,
        *,
        engine_factory: Callable[[], HttpCallEngine] | None = None,
        cookie_name: str = VISITOR_COOKIE,
        max_visitors: int = 1024,
        ttl_seconds: float = 8 * 3600,
    ) -> None:
        self.options = options
        self.cookie_name = cookie_name
        self._engine_factory = engine_factory or (
            lambda: HttpCallEngine(timeout=options.timeout_seconds)
        )
        self._contexts: TTLCache[str, SessionContext] = TTLCache(
            maxsize=max_visitors, ttl=ttl_seconds
        )

    def __len__(self) -> int:
        return len(self._contexts)

    def lookup(self, request: Request) -> SessionContext | None:
        visitor_id = request.cookies.get(self.cookie_name)
        if not visitor_id:
            return None
        return self._contexts.get(visitor_id)

    def get_or_create(self, request: Request) -> tuple[str, SessionContext, bool]:
        """Return ``(visitor_id, context, created)`` for *request*."""
        visitor_id = request.cookies.get(self.cookie_name)
        if visitor_id:
            context = self._contexts.get(visitor_id)
            if context is not None:
                return visitor_id, context, False

        visitor_id = secrets.token_urlsafe(32)
        context = SessionContext.create(self.options, engine=self._engine_factory())
        self._contexts[visitor_id] = context
        _LOG.debug("New visitor session %s", mask_sensitive(visitor_id, 6))
        return visitor_id, context, True

    async def discard(self, visitor_id: str) -> None:
        context = self._contexts.pop(visitor_id, None)
        if context is not None:
            await context.aclose()

    def set_cookie(self, response: Response, request: Request, visitor_id: str) -> None:
        response.set_cookie(
            self.cookie_name,
            visitor_id,
            httponly=True,
            samesite="lax",
            secure=request.url.scheme == "https",
        )

    async def aclose(self) -> None:
        for visitor_id in list(self._contexts):
            await self.discard(visitor_id)


def _location(request: Request, meta: Mapping[str, Any] | None = None) -> RouteLocation:
    return RouteLocation(
        path=request.url.path,
        query=dict(request.query_params),
        meta=meta,
    )


def _origin_location(request: Request) -> RouteLocation | None:
    referer = request.headers.get("referer")
    if not referer:
        return None
    parts = urlsplit(referer)
    if parts.netloc and parts.netloc != request.url.netloc:
        return None
    target = parts.path or "/"
    if parts.query:
        target += "?" + parts.query
    return RouteLocation.parse(target)


def _redirect(decision: NavigationDecision) -> RedirectResponse:
    # Use 303 See Other for GET safety across methods
    return RedirectResponse(decision.redirect_to or "/", status_code=303)


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #
def register_session_routes(
    app: "Starlette",
    sessions: VisitorSessions,
    *,
    logout_path: str = "/logout",
    callback_path: str = "/oauth2/cb",
    sso_path: str = "/login/sso",
) -> None:
    """Attach logout, OAuth2 callback and SSO start endpoints to *app*."""
    routes_auth = sessions.options.routes_auth

    # ----- GET /logout ----------------------------------------------------- #
    async def _logout(request: Request) -> Response:
        visitor_id = request.cookies.get(sessions.cookie_name)
        context = sessions.lookup(request)
        if context is None:
            return _redirect(NavigationDecision.redirect(routes_auth.post_logout_redirect_route))

        decision = await context.guards.logout_guard(
            _location(request), _origin_location(request)
        )
        response = _redirect(decision)
        if not context.session.is_logged_in and visitor_id:
            await sessions.discard(visitor_id)
            response.delete_cookie(sessions.cookie_name)
        return response

    # ----- GET /oauth2/cb -------------------------------------------------- #
    async def _oauth2_callback(request: Request) -> Response:
        visitor_id, context, created = sessions.get_or_create(request)
        decision = await context.guards.oauth2_callback_guard(
            _location(request), _origin_location(request)
        )
        response = _redirect(decision)
        if created and not context.session.is_logged_in:
            await sessions.discard(visitor_id)
        elif created:
            sessions.set_cookie(response, request, visitor_id)
        return response

    # ----- GET /login/sso -------------------------------------------------- #
    async def _sso_start(request: Request) -> Response:
        visitor_id, context, created = sessions.get_or_create(request)
        try:
            url = await build_sso_login_url(context.api, context.options)
        except CallError as exc:
            _LOG.warning("Code challenge request failed kind=%s", exc.kind)
            payload = exc.to_payload()
        except ProtocolViolationError as exc:
            _LOG.error("Code challenge request violated protocol: %s", exc)
            payload = {"name": "ProtocolViolation", "message": str(exc)}
        else:
            payload = None

        if payload is not None:
            if created:
                await sessions.discard(visitor_id)
            return JSONResponse(payload, status_code=502)

        response = RedirectResponse(url, status_code=303)
        if created:
            # the backend keeps the PKCE verifier against this visitor's cookies
            sessions.set_cookie(response, request, visitor_id)
        return response

    app.add_route(logout_path, _logout, methods=["GET"])
    app.add_route(callback_path, _oauth2_callback, methods=["GET"])
    app.add_route(sso_path, _sso_start, methods=["GET"])


class ProtectedRouteMiddleware(BaseHTTPMiddleware):
    """ASGI middleware running the protected-route check for every request.

    ``route_meta`` maps request paths to route metadata; paths missing from the
    table carry no meta and are always allowed.  Visitors without a session
    context count as logged out.
    """

    def __init__(
        self,
        app,  # noqa: ANN001
        sessions: VisitorSessions,
        route_meta: Mapping[str, Mapping[str, Any]],
    ) -> None:
        super().__init__(app)
        self.sessions = sessions
        self.route_meta = dict(route_meta)

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]  # noqa: ANN001
        context = self.sessions.lookup(request)
        decision = protected_route_decision(
            _location(request, self.route_meta.get(request.url.path)),
            logged_in=context is not None and context.session.is_logged_in,
            options=self.sessions.options.routes_auth,
        )
        if not decision.allowed:
            return _redirect(decision)
        return await call_next(request)
