from __future__ import annotations

from dataclasses import dataclass

from oauth_session.client.api import ApiClient
from oauth_session.client.http import HttpCallEngine
from oauth_session.client.session import SessionState
from oauth_session.config import SessionClientOptions
from oauth_session.routing.guards import NavigationGuards


@dataclass(frozen=True)
class SessionContext:
    """
    Everything one authenticated client needs, constructed once and passed
    explicitly to the routing layer, HTTP adapters and UI code.
    The API client owns the credential; the session state owns the user.
    """

    options: SessionClientOptions
    api: ApiClient
    session: SessionState
    guards: NavigationGuards

    @classmethod
    def create(
        cls,
        options: SessionClientOptions,
        *,
        engine: HttpCallEngine | None = None,
    ) -> "SessionContext":
        engine = engine or HttpCallEngine(timeout=options.timeout_seconds)
        api = ApiClient(
            engine,
            base_url=options.base_url or "",
            single_flight_refresh=options.single_flight_refresh,
        )
        session = SessionState(api)
        guards = NavigationGuards(api, session, options.routes_auth)
        return cls(options=options, api=api, session=session, guards=guards)

    async def aclose(self) -> None:
        await self.api.aclose()
