"""Unit tests for NavigationGuards decisions.

Coverage:
* Protected-route guard allow / redirect / allow matrix
* Logout guard: success, 401 (already logged out), other failures
* OAuth2 callback guard: provider error, success, exchange failure
* Session-change target selection and refresh-failure reaction
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qsl, urlsplit

import httpx
import pytest

from oauth_session.client.api import ApiClient
from oauth_session.client.models import User
from oauth_session.client.redirect import decode_redirect_target, encode_redirect_target
from oauth_session.client.session import SessionState
from oauth_session.config import RouteAuthOptions
from oauth_session.routing.guards import NavigationGuards
from oauth_session.routing.navigation import RouteLocation
from tests.support.backend import FakeBackend, error_response, unauthorized

pytestmark = pytest.mark.anyio

PROFILE = RouteLocation.parse("/profile?tab=keys", meta={"requiresAuth": True})


@pytest.fixture()
def guards(api: ApiClient, session: SessionState) -> NavigationGuards:
    return NavigationGuards(api, session, RouteAuthOptions())


# --------------------------------------------------------------------------- #
# Protected-route guard                                                       #
# --------------------------------------------------------------------------- #
@pytest.mark.parametrize(
    "meta", [None, {}, {"requiresAuth": False}, {"title": "Home"}]
)
async def test_unprotected_routes_always_allowed(
    guards: NavigationGuards, session: SessionState, meta: dict | None
) -> None:
    assert session.is_logged_in is False
    decision = guards.protected_route_guard(RouteLocation("/home", meta=meta), None)
    assert decision.allowed


async def test_protected_route_redirects_when_logged_out(guards: NavigationGuards) -> None:
    decision = guards.protected_route_guard(PROFILE, None)

    assert not decision.allowed
    parts = urlsplit(decision.redirect_to)
    assert parts.path == "/"
    params = dict(parse_qsl(parts.query))
    assert decode_redirect_target(params["redirect"]) == "/profile?tab=keys"


async def test_protected_route_allowed_when_logged_in(
    guards: NavigationGuards, session: SessionState
) -> None:
    session.set_current_user(User(id="u1"))
    assert guards.protected_route_guard(PROFILE, None).allowed


async def test_custom_flag_key_and_unauthorized_route(
    api: ApiClient, session: SessionState
) -> None:
    guards = NavigationGuards(
        api,
        session,
        RouteAuthOptions(auth_flag_key="private", unauthorized_redirect_route="/login"),
    )

    assert guards.protected_route_guard(PROFILE, None).allowed
    decision = guards.protected_route_guard(
        RouteLocation("/vault", meta={"private": True}), None
    )
    assert decision.redirect_to == "/login?redirect=" + encode_redirect_target("/vault")


# --------------------------------------------------------------------------- #
# Logout guard                                                                #
# --------------------------------------------------------------------------- #
async def test_logout_success_clears_session(
    guards: NavigationGuards, session: SessionState, api: ApiClient, backend: FakeBackend
) -> None:
    session.set_current_user(User(id="u1"))
    api.token = "tok"
    backend.queue("POST", "/oauth2/logout", httpx.Response(200, json={}))

    decision = await guards.logout_guard(RouteLocation("/logout"), PROFILE)

    assert decision.redirect_to == "/login"
    assert session.current_user is None
    assert api.token == ""


async def test_logout_logs_session_tag(
    guards: NavigationGuards,
    session: SessionState,
    backend: FakeBackend,
    caplog: pytest.LogCaptureFixture,
) -> None:
    session.set_current_user(User(id="7f1c2a90-4f5e", email="a@b.c"))
    backend.queue("POST", "/oauth2/logout", httpx.Response(204))

    with caplog.at_level(logging.INFO, logger="oauth-session.routing.guards"):
        await guards.logout_guard(RouteLocation("/logout"), None)

    (record,) = [r for r in caplog.records if r.getMessage().endswith("Logged out")]
    assert record.getMessage() == "[user=7f1c2a route=/logout] Logged out"
    assert (record.user, record.route) == ("7f1c2a", "/logout")
    assert "a@b.c" not in caplog.text


async def test_logout_401_returns_to_origin(
    guards: NavigationGuards, session: SessionState, backend: FakeBackend
) -> None:
    session.set_current_user(User(id="u1"))
    backend.queue("POST", "/oauth2/logout", unauthorized())
    backend.queue("POST", "/oauth2/refresh", unauthorized("refresh expired"))

    decision = await guards.logout_guard(RouteLocation("/logout"), PROFILE)

    assert decision.redirect_to == "/profile?tab=keys"


@pytest.mark.parametrize(
    "response",
    [error_response(500, "InternalError"), httpx.ConnectError("offline"), httpx.Response(502)],
)
async def test_logout_other_failures_go_to_root(
    guards: NavigationGuards, session: SessionState, backend: FakeBackend, response: object
) -> None:
    user = User(id="u1")
    session.set_current_user(user)
    backend.queue("POST", "/oauth2/logout", response)

    decision = await guards.logout_guard(RouteLocation("/logout"), PROFILE)

    assert decision.redirect_to == "/"
    assert session.current_user is user


# --------------------------------------------------------------------------- #
# OAuth2 callback guard                                                       #
# --------------------------------------------------------------------------- #
async def test_callback_error_is_echoed(guards: NavigationGuards, backend: FakeBackend) -> None:
    to = RouteLocation("/oauth2/cb", query={"error": "access denied&more"})

    decision = await guards.oauth2_callback_guard(to, None)

    assert decision.redirect_to == "/auth-error?error=access%20denied%26more"
    assert backend.requests == []


async def test_callback_success_sets_user(
    guards: NavigationGuards, session: SessionState, api: ApiClient, backend: FakeBackend
) -> None:
    backend.queue(
        "POST",
        "/oauth2/token",
        httpx.Response(200, json={"token": "tok", "user": {"id": "u1"}}),
    )
    to = RouteLocation("/oauth2/cb", query={"code": "c0de", "code_challenge": "ch"})

    decision = await guards.oauth2_callback_guard(to, None)

    assert decision.redirect_to == "/auth/profile"
    assert session.current_user == {"id": "u1"}
    assert api.token == "tok"


async def test_callback_without_user_stays_logged_out(
    guards: NavigationGuards, session: SessionState, api: ApiClient, backend: FakeBackend
) -> None:
    backend.queue("POST", "/oauth2/token", httpx.Response(200, json={"token": "tok"}))
    to = RouteLocation("/oauth2/cb", query={"code": "c0de", "code_challenge": "ch"})

    decision = await guards.oauth2_callback_guard(to, None)

    assert decision.redirect_to == "/"
    assert session.is_logged_in is False
    assert api.token == ""


@pytest.mark.parametrize(
    "query", [{"code": "c0de", "code_challenge": "ch"}, {"code": "c0de"}, {}]
)
async def test_callback_failure_goes_to_root(
    guards: NavigationGuards, session: SessionState, backend: FakeBackend, query: dict
) -> None:
    backend.queue("POST", "/oauth2/token", error_response(400, "InvalidGrant"))

    decision = await guards.oauth2_callback_guard(RouteLocation("/oauth2/cb", query=query), None)

    assert decision.redirect_to == "/"
    assert session.current_user is None


# --------------------------------------------------------------------------- #
# Session reactions                                                           #
# --------------------------------------------------------------------------- #
async def test_logged_out_target(guards: NavigationGuards) -> None:
    assert guards.session_change_target(None, PROFILE) == "/login"


async def test_logged_in_restores_saved_destination(guards: NavigationGuards) -> None:
    current = RouteLocation(
        "/", query={"redirect": encode_redirect_target("/reports?year=2024&q=a b")}
    )
    assert guards.session_change_target(User(id="u1"), current) == "/reports?year=2024&q=a b"


async def test_logged_in_on_protected_route_goes_to_post_login(
    guards: NavigationGuards,
) -> None:
    assert guards.session_change_target(User(id="u1"), PROFILE) == "/auth/profile"


async def test_logged_in_on_public_route_stays(guards: NavigationGuards) -> None:
    assert guards.session_change_target(User(id="u1"), RouteLocation("/about")) is None


async def test_undecodable_redirect_is_ignored(guards: NavigationGuards) -> None:
    current = RouteLocation("/", query={"redirect": encode_redirect_target("//evil.test")})
    assert guards.session_change_target(User(id="u1"), current) is None


async def test_refresh_failure_clears_session(
    guards: NavigationGuards, session: SessionState
) -> None:
    seen: list[object] = []
    session.subscribe(seen.append)

    guards.handle_refresh_failure()
    assert seen == []

    session.set_current_user(User(id="u1"))
    guards.handle_refresh_failure()
    assert session.current_user is None
    assert seen[-1] is None
