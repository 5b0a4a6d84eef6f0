"""Configuration objects for the session client.

Everything can be built in code or loaded with
:meth:`SessionClientOptions.from_env`, which reads ``OAUTH_SESSION_*``
variables:

=======================================  =====================================
Variable                                 Meaning
=======================================  =====================================
``OAUTH_SESSION_BASE_URL``               Backend origin (optional)
``OAUTH_SESSION_LOGIN_PAGE_URL``         Authorization server login page
``OAUTH_SESSION_CLIENT_ID``              OAuth2 client id
``OAUTH_SESSION_REDIRECT_URI``           Callback URI (optional)
``OAUTH_SESSION_APP_ORIGIN``             Origin used for the default callback
``OAUTH_SESSION_AUTH_FLAG_KEY``          Route meta key marking protection
``OAUTH_SESSION_UNAUTHORIZED_ROUTE``     Where blocked navigations go
``OAUTH_SESSION_POST_LOGIN_ROUTE``       Default destination after login
``OAUTH_SESSION_POST_LOGOUT_ROUTE``      Destination after logout
``OAUTH_SESSION_LOGIN_ERROR_ROUTE``      Destination for callback errors
``OAUTH_SESSION_TIMEOUT_SECONDS``        HTTP timeout (default 30)
``OAUTH_SESSION_SINGLE_FLIGHT_REFRESH``  Coalesce concurrent refreshes
=======================================  =====================================
"""

from __future__ import annotations

from dataclasses import dataclass, field

from oauth_session.utils.environment import env_bool, env_float, env_str


class ConfigurationError(ValueError):
    """Raised when required configuration is missing."""


@dataclass(frozen=True)
class OAuth2Options:
    login_page_url: str
    client_id: str
    redirect_uri: str | None = None


@dataclass(frozen=True)
class RouteAuthOptions:
    auth_flag_key: str = "requiresAuth"
    unauthorized_redirect_route: str = "/"
    post_login_redirect_route: str = "/auth/profile"
    post_logout_redirect_route: str = "/login"
    login_error_redirect_route: str = "/auth-error"


@dataclass(frozen=True)
class SessionClientOptions:
    """Everything needed to wire a :class:`~oauth_session.plugin.SessionPlugin`."""

    oauth2: OAuth2Options
    base_url: str | None = None
    routes_auth: RouteAuthOptions = field(default_factory=RouteAuthOptions)
    # origin of the application itself; only used for the default callback URI
    app_origin: str = "http://localhost"
    timeout_seconds: float = 30.0
    single_flight_refresh: bool = True

    @property
    def redirect_uri(self) -> str:
        return self.oauth2.redirect_uri or f"{self.app_origin.rstrip('/')}/#/oauth2/cb"

    @staticmethod
    def from_env() -> "SessionClientOptions":
        login_page_url = env_str("LOGIN_PAGE_URL")
        client_id = env_str("CLIENT_ID")
        if not login_page_url or not client_id:
            raise ConfigurationError(
                "OAUTH_SESSION_LOGIN_PAGE_URL and OAUTH_SESSION_CLIENT_ID must be set"
            )

        base_url = env_str("BASE_URL")
        defaults = RouteAuthOptions()
        routes_auth = RouteAuthOptions(
            auth_flag_key=env_str("AUTH_FLAG_KEY", defaults.auth_flag_key),
            unauthorized_redirect_route=env_str(
                "UNAUTHORIZED_ROUTE", defaults.unauthorized_redirect_route
            ),
            post_login_redirect_route=env_str(
                "POST_LOGIN_ROUTE", defaults.post_login_redirect_route
            ),
            post_logout_redirect_route=env_str(
                "POST_LOGOUT_ROUTE", defaults.post_logout_redirect_route
            ),
            login_error_redirect_route=env_str(
                "LOGIN_ERROR_ROUTE", defaults.login_error_redirect_route
            ),
        )

        return SessionClientOptions(
            oauth2=OAuth2Options(
                login_page_url=login_page_url,
                client_id=client_id,
                redirect_uri=env_str("REDIRECT_URI"),
            ),
            base_url=base_url.rstrip("/") if base_url else None,
            routes_auth=routes_auth,
            app_origin=env_str("APP_ORIGIN", "http://localhost"),
            timeout_seconds=env_float("TIMEOUT_SECONDS", 30.0),
            single_flight_refresh=env_bool("SINGLE_FLIGHT_REFRESH", True),
        )
