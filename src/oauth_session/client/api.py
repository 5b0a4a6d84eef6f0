"""Authenticated call orchestrator.

:class:`ApiClient` is the single entry point for backend calls.  It owns the
bearer credential and implements the refresh protocol:

1. send the request with the current credential;
2. on ``401`` (authenticated calls with refresh enabled) call
   ``POST /oauth2/refresh`` **once**;
3. store the new credential and replay the original request **once**.

The replay's outcome is final, so one logical call costs at most three round
trips.  When the refresh itself fails every ``on_cannot_refresh_token``
observer is notified (fire-and-forget) and :class:`RefreshError` is raised.

Refresh coalescing
------------------
With ``single_flight_refresh=True`` (default) concurrent calls that hit ``401``
while a refresh is in flight wait for that refresh instead of starting their
own.  ``single_flight_refresh=False`` lets each call refresh independently;
the last credential written wins.
Coordination uses :mod:`asyncio` primitives, like the observer channels.

Credentials, authorization codes and code challenges are **never** logged
unmasked.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Final, Mapping
from urllib.parse import quote

from oauth_session.client.errors import (
    CallError,
    ProtocolViolationError,
    RefreshError,
    SessionClientError,
)
from oauth_session.client.events import EventChannel, Subscriber
from oauth_session.client.http import HttpCallEngine
from oauth_session.client.models import LoginResult, User
from oauth_session.utils.logging import mask_sensitive

_LOG = logging.getLogger("oauth-session.client.api")

TOKEN_PATH: Final[str] = "/oauth2/token"
REFRESH_PATH: Final[str] = "/oauth2/refresh"
USER_PATH: Final[str] = "/oauth2/user"
LOGOUT_PATH: Final[str] = "/oauth2/logout"
CODE_CHALLENGE_PATH: Final[str] = "/oauth2/code-challenge"


class _InflightRefresh:
    """Result slot shared by callers waiting on one refresh."""

    __slots__ = ("done", "token", "error")

    def __init__(self) -> None:
        self.done = asyncio.Event()
        self.token: str | None = None
        self.error: SessionClientError | None = None


class ApiClient:
    """Backend client with bearer injection and one-shot refresh + replay."""

    def __init__(
        self,
        engine: HttpCallEngine | None = None,
        *,
        base_url: str = "",
        single_flight_refresh: bool = True,
    ) -> None:
        self._engine = engine or HttpCallEngine(base_url)
        if engine is not None and base_url:
            self._engine.base_url = base_url
        self._token: str = ""
        self._single_flight = single_flight_refresh
        self._inflight: _InflightRefresh | None = None
        self.refresh_failures = EventChannel("cannot-refresh-token")

    # ------------------------------------------------------------------ #
    # Credential & configuration                                         #
    # ------------------------------------------------------------------ #
    @property
    def token(self) -> str:
        """Current bearer credential; empty when unauthenticated."""
        return self._token

    @token.setter
    def token(self, value: str) -> None:
        self._token = value or ""

    @property
    def base_url(self) -> str:
        return self._engine.base_url

    def set_base_url(self, base_url: str) -> None:
        self._engine.base_url = base_url

    def on_cannot_refresh_token(self, callback: Subscriber) -> None:
        """Register *callback* to run whenever a refresh attempt fails."""
        self.refresh_failures.subscribe(callback)

    # ------------------------------------------------------------------ #
    # Public call API                                                    #
    # ------------------------------------------------------------------ #
    async def call(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        json: Any = None,
        authenticated: bool = True,
        with_refresh: bool = True,
    ) -> Any:
        """Call *path* on the backend and return the decoded JSON body.

        Raises
        ------
        CallError
            Terminal transport or server failure (including a replayed 401).
        RefreshError
            The call was rejected with 401 and the refresh attempt failed.
        ProtocolViolationError
            The call engine raised something other than a ``CallError``.
        """
        bearer = self._token if authenticated else ""
        try:
            return await self._send(path, method, headers, json, bearer)
        except CallError as err:
            if not err.is_unauthorized or not with_refresh or not authenticated:
                raise
            _LOG.debug("%s %s rejected with 401; refreshing credential", method, path)

        token = await self._refresh_token()
        return await self._send(path, method, headers, json, token)

    async def login_using_auth_code(self, code: str, code_challenge: str) -> User:
        """Exchange an authorization *code* for a credential and user."""
        path = (
            f"{TOKEN_PATH}?authorizationCode={quote(code, safe='')}"
            f"&codeChallenge={quote(code_challenge, safe='')}"
        )
        payload = await self.call(path, method="POST", authenticated=False)
        if not isinstance(payload, Mapping):
            raise ProtocolViolationError("Token response is not a JSON object")
        if not isinstance(payload.get("user"), Mapping):
            raise ProtocolViolationError("Token response carries no user")
        result = LoginResult.from_payload(payload)
        self._token = result.token
        _LOG.info(
            "Exchanged authorization code=%s for credential=%s",
            mask_sensitive(code),
            mask_sensitive(result.token),
        )
        return result.user

    async def logout(self) -> Any:
        """Terminate the backend session and drop the credential."""
        data = await self.call(LOGOUT_PATH, method="POST")
        self._token = ""
        _LOG.info("Logged out; credential cleared")
        return data

    async def fetch_current_user(self) -> User:
        payload = await self.call(USER_PATH)
        if not isinstance(payload, Mapping):
            raise ProtocolViolationError("User response is not a JSON object")
        return User.from_payload(payload)

    async def request_code_challenge(self) -> str:
        """Ask the backend for a fresh PKCE code challenge."""
        payload = await self.call(CODE_CHALLENGE_PATH, method="POST")
        challenge = payload.get("codeChallenge") if isinstance(payload, Mapping) else None
        if not challenge:
            raise ProtocolViolationError("Code challenge response missing codeChallenge")
        return str(challenge)

    async def aclose(self) -> None:
        await self._engine.aclose()

    # ---------------- internal helpers --------------------------------- #
    async def _send(
        self,
        path: str,
        method: str,
        headers: Mapping[str, str] | None,
        json_body: Any,
        bearer: str,
    ) -> Any:
        try:
            return await self._engine.send(
                path, method=method, headers=headers, json_body=json_body, bearer=bearer
            )
        except CallError:
            raise
        except Exception as exc:  # engine contract: only CallError may escape
            _LOG.error(
                "Call engine raised %s for %s %s instead of CallError",
                type(exc).__name__,
                method,
                path,
                exc_info=True,
            )
            raise ProtocolViolationError() from exc

    async def _refresh_token(self) -> str:
        """Run (or join) the single refresh attempt and return the new token."""
        pending = self._inflight
        if self._single_flight and pending is not None:
            await pending.done.wait()
            if pending.error is not None:
                raise pending.error
            if pending.token is None:
                # leader was cancelled before finishing; take over
                return await self._refresh_token()
            return pending.token

        pending = _InflightRefresh()
        if self._single_flight:
            self._inflight = pending
        try:
            try:
                payload = await self._send(REFRESH_PATH, "POST", None, None, "")
            except CallError as exc:
                error = RefreshError.from_call_error(exc)
                pending.error = error
                _LOG.warning(
                    "Credential refresh failed kind=%s status=%s", exc.kind, exc.status
                )
                self.refresh_failures.emit()
                raise error from exc
            except ProtocolViolationError as exc:
                pending.error = exc
                self.refresh_failures.emit()
                raise

            token = ""
            if isinstance(payload, Mapping):
                token = str(payload.get("token") or "")
            self._token = token
            pending.token = token
            _LOG.info("Refreshed credential=%s", mask_sensitive(token))
            return token
        finally:
            pending.done.set()
            if self._inflight is pending:
                self._inflight = None
