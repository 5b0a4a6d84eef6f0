"""Fixtures wiring the client stack to a scripted backend."""

from __future__ import annotations

import pytest

from oauth_session.client.api import ApiClient
from oauth_session.client.http import HttpCallEngine
from oauth_session.client.session import SessionState
from tests.support.backend import API_BASE_URL, FakeBackend


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
async def engine(backend: FakeBackend):
    async with HttpCallEngine(API_BASE_URL, transport=backend.transport()) as eng:
        yield eng


@pytest.fixture()
def api(engine: HttpCallEngine) -> ApiClient:
    return ApiClient(engine)


@pytest.fixture()
def session(api: ApiClient) -> SessionState:
    return SessionState(api)
