"""Unit tests for SessionState change notification and silent login."""

from __future__ import annotations

import httpx
import pytest

from oauth_session.client.models import User
from oauth_session.client.session import SessionState
from tests.support.backend import FakeBackend, error_response

pytestmark = pytest.mark.anyio


async def test_starts_logged_out(session: SessionState) -> None:
    assert session.current_user is None
    assert session.is_logged_in is False
    assert session.is_silently_logging_in is False


async def test_subscribers_notified_in_registration_order(session: SessionState) -> None:
    seen: list[tuple[str, object]] = []
    session.subscribe(lambda user: seen.append(("a", user)))
    session.subscribe(lambda user: seen.append(("b", user)))
    user = User(id="u1")

    session.set_current_user(user)
    session.clear()

    assert seen == [("a", user), ("b", user), ("a", None), ("b", None)]
    assert session.is_logged_in is False


async def test_setting_same_value_does_not_notify(session: SessionState) -> None:
    seen: list[object] = []
    session.subscribe(seen.append)
    user = User(id="u1")

    session.set_current_user(user)
    session.set_current_user(user)
    session.clear()
    session.clear()

    assert seen == [user, None]


async def test_async_subscriber_is_not_awaited_by_setter(session: SessionState) -> None:
    seen: list[object] = []

    async def subscriber(user: User | None) -> None:
        seen.append(user)

    session.subscribe(subscriber)
    session.set_current_user(User(id="u1"))
    assert seen == []

    await session.changes.drain()
    assert [u.id for u in seen] == ["u1"]


async def test_silent_login_restores_user(session: SessionState, backend: FakeBackend) -> None:
    flags: list[bool] = []

    def user_endpoint(request: httpx.Request) -> httpx.Response:
        flags.append(session.is_silently_logging_in)
        return httpx.Response(200, json={"id": "u1"})

    backend.queue("GET", "/oauth2/user", user_endpoint)

    await session.silent_login()

    assert flags == [True]
    assert session.current_user == {"id": "u1"}
    assert session.is_silently_logging_in is False


@pytest.mark.parametrize(
    "response",
    [
        error_response(500, "InternalError"),
        httpx.Response(200, text="not json"),
        httpx.ConnectError("offline"),
    ],
)
async def test_silent_login_swallows_failures(
    session: SessionState, backend: FakeBackend, response: object
) -> None:
    backend.queue("GET", "/oauth2/user", response)

    await session.silent_login()

    assert session.current_user is None
    assert session.is_silently_logging_in is False


async def test_silent_login_failure_keeps_existing_user(
    session: SessionState, backend: FakeBackend
) -> None:
    user = User(id="u1")
    session.set_current_user(user)
    backend.queue("GET", "/oauth2/user", error_response(503, "Unavailable"))

    await session.silent_login()

    assert session.current_user is user
