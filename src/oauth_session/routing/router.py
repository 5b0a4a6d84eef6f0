"""In-memory history router.

A small implementation of :class:`~oauth_session.routing.navigation.Router`
for headless applications and tests.  Routes are matched on their exact path;
unknown paths resolve to a location without meta.

Navigation runs the global ``before_each`` guards in registration order and
then the target route's ``before_enter`` guard.  The first redirect decision
restarts navigation at the new target; after ``max_redirects`` hops
:class:`RedirectLoopError` is raised.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Mapping

from oauth_session.routing.navigation import (
    NavigationDecision,
    NavigationGuard,
    RouteLocation,
)

_LOG = logging.getLogger("oauth-session.routing.router")


class RedirectLoopError(RuntimeError):
    """Raised when guards keep redirecting without settling."""


@dataclass(frozen=True, slots=True)
class _RouteRecord:
    path: str
    meta: Mapping[str, Any] | None = None
    before_enter: NavigationGuard | None = None


class HistoryRouter:
    def __init__(
        self,
        routes: Mapping[str, Mapping[str, Any] | None] | None = None,
        *,
        initial: str = "/",
        max_redirects: int = 10,
    ) -> None:
        self._routes: dict[str, _RouteRecord] = {}
        for path, meta in (routes or {}).items():
            self.add_route(path, meta=meta)
        self._guards: list[NavigationGuard] = []
        self._max_redirects = max_redirects
        self._current = self.resolve(initial)
        self.history: list[RouteLocation] = [self._current]
        # absolute URLs handed to replace_location (full-page navigations)
        self.external_redirects: list[str] = []

    @property
    def current_route(self) -> RouteLocation:
        return self._current

    def add_route(
        self,
        path: str,
        *,
        meta: Mapping[str, Any] | None = None,
        before_enter: NavigationGuard | None = None,
    ) -> None:
        self._routes[path] = _RouteRecord(path=path, meta=meta, before_enter=before_enter)

    def before_each(self, guard: NavigationGuard) -> None:
        self._guards.append(guard)

    def resolve(self, location: str) -> RouteLocation:
        parsed = RouteLocation.parse(location)
        record = self._routes.get(parsed.path)
        if record is None:
            return parsed
        return RouteLocation(
            path=parsed.path,
            query=parsed.query,
            meta=record.meta,
            fragment=parsed.fragment,
        )

    async def push(self, location: str) -> RouteLocation:
        """Navigate to *location*, following guard redirects."""
        target = location
        for _ in range(self._max_redirects + 1):
            to = self.resolve(target)
            decision = await self._run_guards(to, self._current)
            if decision.allowed:
                self._current = to
                self.history.append(to)
                _LOG.debug("Navigated to %s", to.path)
                return to
            _LOG.debug("Navigation to %s redirected to %s", to.path, decision.redirect_to)
            target = decision.redirect_to or "/"
        raise RedirectLoopError(f"Navigation to {location!r} exceeded redirect limit")

    def replace_location(self, url: str) -> None:
        _LOG.info("Leaving application for %s", url.split("?", 1)[0])
        self.external_redirects.append(url)

    # ---------------- internal helpers --------------------------------- #
    async def _run_guards(
        self, to: RouteLocation, from_: RouteLocation | None
    ) -> NavigationDecision:
        guards = list(self._guards)
        record = self._routes.get(to.path)
        if record is not None and record.before_enter is not None:
            guards.append(record.before_enter)

        for guard in guards:
            decision = guard(to, from_)
            if inspect.isawaitable(decision):
                decision = await decision
            if not decision.allowed:
                return decision
        return NavigationDecision.allow()
