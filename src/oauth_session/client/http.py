"""HTTP call engine – one JSON round trip per :meth:`HttpCallEngine.send`.

The engine is the only place that talks to the transport.  Every failure it
raises is a :class:`~oauth_session.client.errors.CallError`:

* transport problems (DNS, connect, timeout…) keep the httpx exception name as
  ``kind`` and carry no ``status``;
* non-2xx responses are decoded as ``{"name": ..., "message": ...}`` and carry
  the response status.

A non-2xx body that is not valid JSON is a backend defect; the decoder's
``ValueError`` is left to propagate so that the orchestrator can report it as
a protocol violation.

Cookies set by the backend are kept by the pooled ``httpx.AsyncClient`` and
sent back on subsequent calls.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from oauth_session.client.errors import (
    NETWORK_ERROR_KIND,
    UNEXPECTED_ERROR_MESSAGE,
    CallError,
)

_LOG = logging.getLogger("oauth-session.client.http")

_DEFAULT_TIMEOUT_SECONDS = 30.0


class HttpCallEngine:
    """Stateless JSON-over-HTTP sender bound to a base URL."""

    def __init__(
        self,
        base_url: str = "",
        *,
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, transport=transport)

    async def send(
        self,
        path: str,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        json_body: Any = None,
        bearer: str = "",
    ) -> Any:
        """Perform one request and return the decoded JSON body.

        Returns ``None`` when a successful response has an empty body.
        """
        request_headers: dict[str, str] = dict(headers or {})
        request_headers["Content-Type"] = "application/json"
        if bearer:
            request_headers["Authorization"] = bearer

        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(
                method.upper(),
                url,
                headers=request_headers,
                json=json_body,
            )
        except httpx.HTTPError as exc:
            message = str(exc)
            _LOG.debug("Transport failure %s %s: %s", method, path, type(exc).__name__)
            if not message:
                raise CallError(
                    kind=NETWORK_ERROR_KIND, message=UNEXPECTED_ERROR_MESSAGE
                ) from exc
            raise CallError(kind=type(exc).__name__, message=message) from exc
        except Exception as exc:  # broad: unknown transport failure shapes
            _LOG.warning(
                "Unrecognized transport failure %s %s", method, path, exc_info=True
            )
            raise CallError(
                kind=NETWORK_ERROR_KIND, message=UNEXPECTED_ERROR_MESSAGE
            ) from exc

        if not response.is_success:
            body = response.json()
            if not isinstance(body, dict):
                body = {}
            _LOG.debug(
                "%s %s returned %s name=%s",
                method,
                path,
                response.status_code,
                body.get("name"),
            )
            raise CallError(
                kind=str(body.get("name") or "HTTPError"),
                message=str(body.get("message") or response.reason_phrase),
                status=response.status_code,
            )

        if not response.content:
            return None
        return response.json()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpCallEngine":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
