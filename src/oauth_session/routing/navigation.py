"""Router-facing types: locations, guard decisions and the router contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Protocol, Union, runtime_checkable
from urllib.parse import parse_qsl, quote, urlencode, urlsplit


@dataclass(frozen=True)
class RouteLocation:
    """A resolved navigation target.

    ``meta`` is the route's static metadata (``None`` for routes that declare
    none); ``query`` keeps the first value of every query parameter.
    """

    path: str
    query: Mapping[str, str] = field(default_factory=dict)
    meta: Mapping[str, Any] | None = None
    fragment: str = ""

    @property
    def full_path(self) -> str:
        full = self.path
        if self.query:
            full += "?" + urlencode(dict(self.query), quote_via=quote)
        if self.fragment:
            full += "#" + self.fragment
        return full

    @classmethod
    def parse(cls, location: str, meta: Mapping[str, Any] | None = None) -> "RouteLocation":
        parts = urlsplit(location)
        query: dict[str, str] = {}
        for key, value in parse_qsl(parts.query, keep_blank_values=True):
            query.setdefault(key, value)
        return cls(path=parts.path or "/", query=query, meta=meta, fragment=parts.fragment)


@dataclass(frozen=True)
class NavigationDecision:
    """Outcome of a guard: continue, or go to ``redirect_to`` instead."""

    redirect_to: str | None = None

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None

    @classmethod
    def allow(cls) -> "NavigationDecision":
        return cls()

    @classmethod
    def redirect(cls, target: str) -> "NavigationDecision":
        return cls(redirect_to=target)


NavigationGuard = Callable[
    [RouteLocation, "RouteLocation | None"],
    Union[NavigationDecision, Awaitable[NavigationDecision]],
]


def with_query_param(route: str, key: str, value: str) -> str:
    """Append ``key=value`` (URL-encoded) to *route*."""
    separator = "&" if "?" in route else "?"
    return f"{route}{separator}{key}={quote(value, safe='')}"


@runtime_checkable
class Router(Protocol):
    """Minimal navigation interface the session layer depends on."""

    @property
    def current_route(self) -> RouteLocation: ...

    def add_route(
        self,
        path: str,
        *,
        meta: Mapping[str, Any] | None = None,
        before_enter: NavigationGuard | None = None,
    ) -> None: ...

    def before_each(self, guard: NavigationGuard) -> None: ...

    async def push(self, location: str) -> RouteLocation: ...

    def replace_location(self, url: str) -> None: ...
