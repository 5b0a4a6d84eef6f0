"""PKCE login initiation (client side).

The backend issues the code challenge (and keeps the verifier); this module
only builds the authorization-server login URL and hands it to whatever
performs full-page navigation.  Only ``S256`` is requested.
"""

from __future__ import annotations

import logging
from typing import Final, Protocol, runtime_checkable
from urllib.parse import quote, urlencode

from oauth_session.client.api import ApiClient
from oauth_session.config import SessionClientOptions
from oauth_session.utils.logging import mask_sensitive

_LOG = logging.getLogger("oauth-session.client.sso")

_SCOPE: Final[str] = "openid"
_CHALLENGE_METHOD: Final[str] = "S256"


@runtime_checkable
class LocationSink(Protocol):
    """Anything able to leave the application for an absolute URL."""

    def replace_location(self, url: str) -> None: ...


def build_login_url(
    login_page_url: str,
    *,
    client_id: str,
    redirect_uri: str,
    code_challenge: str,
) -> str:
    """Return the authorization-server login URL for a code-flow login."""
    query_params: list[tuple[str, str]] = [
        ("response_type", "code"),
        ("scope", _SCOPE),
        ("code_challenge_method", _CHALLENGE_METHOD),
        ("redirect_uri", redirect_uri),
        ("client_id", client_id),
        ("code_challenge", code_challenge),
    ]
    return f"{login_page_url}?{urlencode(query_params, quote_via=quote)}"


async def build_sso_login_url(api: ApiClient, options: SessionClientOptions) -> str:
    """Fetch a fresh code challenge and build the login URL with it."""
    challenge = await api.request_code_challenge()
    url = build_login_url(
        options.oauth2.login_page_url,
        client_id=options.oauth2.client_id,
        redirect_uri=options.redirect_uri,
        code_challenge=challenge,
    )
    _LOG.debug("Built SSO login URL challenge=%s", mask_sensitive(challenge, 6))
    return url


async def login_using_sso(
    api: ApiClient, options: SessionClientOptions, location: LocationSink
) -> None:
    """Send the user to the authorization server's login page."""
    url = await build_sso_login_url(api, options)
    location.replace_location(url)
