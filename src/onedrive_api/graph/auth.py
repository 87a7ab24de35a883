"""OAuth2 token acquisition for the Microsoft identity platform."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import msal

from onedrive_api.errors import OAuth2Error, UnexpectedResponse
from onedrive_api.graph.api import Api, RawRequest, RawResponse, check_oauth2_status

logger = logging.getLogger(__name__)

AUTHORITY_BASE_URL = "https://login.microsoftonline.com"
DEFAULT_TENANT = "common"
GRAPH_APP_SCOPES = ["https://graph.microsoft.com/.default"]

CLIENT_ASSERTION_TYPE_JWT = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"

GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"


@dataclass(frozen=True)
class Permission:
    """Delegated file permissions requested at login."""

    write: bool = False
    access_shared: bool = False
    offline_access: bool = False

    @classmethod
    def new_read(cls) -> Permission:
        return cls()

    def to_scope_string(self) -> str:
        """Render the space-separated OAuth2 scope, e.g. ``offline_access files.readwrite.all``."""
        scope = "files.readwrite" if self.write else "files.read"
        if self.access_shared:
            scope += ".all"
        if self.offline_access:
            scope = "offline_access " + scope
        return scope


@dataclass(frozen=True)
class ClientCredential:
    """How the application proves its identity to the token endpoint."""

    secret: str | None = None
    assertion: str | None = None

    @classmethod
    def none(cls) -> ClientCredential:
        """Public clients (native/mobile apps) send no credential."""
        return cls()

    @classmethod
    def from_secret(cls, secret: str) -> ClientCredential:
        return cls(secret=secret)

    @classmethod
    def from_assertion(cls, assertion: str) -> ClientCredential:
        """A signed JWT client assertion (certificate credential)."""
        return cls(assertion=assertion)

    def form_params(self) -> list[tuple[str, str]]:
        if self.secret is not None:
            return [("client_secret", self.secret)]
        if self.assertion is not None:
            return [
                ("client_assertion_type", CLIENT_ASSERTION_TYPE_JWT),
                ("client_assertion", self.assertion),
            ]
        return []


@dataclass(frozen=True)
class Token:
    """Result of a successful login. Store it; nothing here mutates it."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    scope: str | None = None


class Authentication:
    """Authorization-code and refresh-token flows for delegated access."""

    def __init__(
        self,
        client_id: str,
        permission: Permission,
        redirect_uri: str,
        tenant: str = DEFAULT_TENANT,
    ) -> None:
        """Initialise the authentication helper.

        Args:
            client_id: Application (client) ID.
            permission: Permissions to request.
            redirect_uri: Redirect URI registered for the application.
            tenant: Tenant ID or one of ``common``, ``organizations``, ``consumers``.
        """
        self._client_id = client_id
        self._permission = permission
        self._redirect_uri = redirect_uri
        self._tenant = tenant

    @property
    def token_endpoint(self) -> str:
        return f"{AUTHORITY_BASE_URL}/{self._tenant}/oauth2/v2.0/token"

    def _auth_url(self, response_type: str) -> str:
        query = urlencode(
            [
                ("client_id", self._client_id),
                ("scope", self._permission.to_scope_string()),
                ("redirect_uri", self._redirect_uri),
                ("response_type", response_type),
            ]
        )
        return f"{AUTHORITY_BASE_URL}/{self._tenant}/oauth2/v2.0/authorize?{query}"

    def code_auth_url(self) -> str:
        """URL of the interactive login page for the authorization-code flow."""
        return self._auth_url("code")

    def token_auth_url(self) -> str:
        """URL of the interactive login page for the implicit (token) flow."""
        return self._auth_url("token")

    def _request_token(self, require_refresh: bool, params: list[tuple[str, str]]) -> Api[Token]:
        request = RawRequest("POST", self.token_endpoint).form_body(params)

        def parse(response: RawResponse) -> Token:
            data = check_oauth2_status(response).json()
            if not isinstance(data, dict) or not isinstance(data.get("access_token"), str):
                raise UnexpectedResponse("Missing field `access_token`")
            refresh_token = data.get("refresh_token")
            if require_refresh and refresh_token is None:
                raise UnexpectedResponse("Missing field `refresh_token`")
            logger.info("[_request_token] token acquired; refresh:%s", refresh_token is not None)
            return Token(
                access_token=data["access_token"],
                refresh_token=refresh_token,
                expires_in=data.get("expires_in"),
                scope=data.get("scope"),
            )

        return Api(request, parse)

    def login_with_code(self, code: str, credential: ClientCredential) -> Api[Token]:
        """Exchange an authorization code for tokens.

        A refresh token is required in the response when offline access
        was requested.
        """
        params = [
            ("client_id", self._client_id),
            *credential.form_params(),
            ("code", code),
            ("grant_type", GRANT_AUTHORIZATION_CODE),
            ("redirect_uri", self._redirect_uri),
        ]
        return self._request_token(self._permission.offline_access, params)

    def login_with_refresh_token(
        self, refresh_token: str, credential: ClientCredential
    ) -> Api[Token]:
        """Exchange a refresh token for a new token pair.

        Raises:
            RuntimeError: If offline access was not requested for this helper.
        """
        if not self._permission.offline_access:
            raise RuntimeError("Refresh token requires offline_access permission")
        params = [
            ("client_id", self._client_id),
            *credential.form_params(),
            ("grant_type", GRANT_REFRESH_TOKEN),
            ("redirect_uri", self._redirect_uri),
            ("refresh_token", refresh_token),
        ]
        return self._request_token(True, params)


class AppTokenProvider:
    """App-only bearer tokens via the client credentials flow (MSAL)."""

    def __init__(self, client_id: str, client_secret: str, tenant_id: str) -> None:
        """Initialise the MSAL confidential client application.

        Args:
            client_id: Azure AD application (client) ID.
            client_secret: Azure AD application client secret.
            tenant_id: Azure AD tenant ID.
        """
        authority = f"{AUTHORITY_BASE_URL}/{tenant_id}"
        self._app = msal.ConfidentialClientApplication(
            client_id=client_id,
            client_credential=client_secret,
            authority=authority,
        )

    def acquire_token(self) -> str:
        """Acquire a Bearer token using client credentials flow.

        Returns:
            Access token string.

        Raises:
            OAuth2Error: If MSAL cannot acquire a token.
        """
        result: dict[str, Any] = self._app.acquire_token_for_client(scopes=GRAPH_APP_SCOPES) or {}
        if "access_token" not in result:
            error = result.get("error", "unknown_error")
            logger.error("[acquire_token] MSAL token acquisition failed; error:%s", error)
            raise OAuth2Error(
                None,
                error,
                result.get("error_description"),
                error_codes=result.get("error_codes"),
            )
        return str(result["access_token"])
