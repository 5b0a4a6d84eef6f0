"""Scripted in-memory backend for ``httpx.MockTransport``."""

from __future__ import annotations

from typing import Any

import httpx

API_BASE_URL = "https://api.example.test"


def error_response(status: int, name: str, message: str = "") -> httpx.Response:
    return httpx.Response(status, json={"name": name, "message": message or name})


def unauthorized(message: str = "jwt expired") -> httpx.Response:
    return error_response(401, "UnauthorizedError", message)


class FakeBackend:
    """Answer requests from per-endpoint queues.

    Each ``(method, path)`` has a queue of responses, exceptions to raise, or
    callables taking the request and returning a response.
    The last queued item is sticky: it keeps answering once the queue drains.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def queue(self, method: str, path: str, *responses: Any) -> None:
        self._routes.setdefault((method.upper(), path), []).extend(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return error_response(404, "NotFoundError", f"no route {request.url.path}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return item(request)
        return item

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)
