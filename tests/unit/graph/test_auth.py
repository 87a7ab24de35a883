"""Unit tests for graph/auth.py — OAuth2 flows and MSAL app-only tokens."""

import json
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest

from onedrive_api.errors import OAuth2Error, UnexpectedResponse
from onedrive_api.graph.api import Headers, RawResponse
from onedrive_api.graph.auth import (
    AppTokenProvider,
    Authentication,
    ClientCredential,
    Permission,
)

REDIRECT_URI = "https://login.microsoftonline.com/common/oauth2/nativeclient"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _auth(offline_access: bool = True) -> Authentication:
    return Authentication(
        client_id="test-client-id",
        permission=Permission(write=True, offline_access=offline_access),
        redirect_uri=REDIRECT_URI,
    )


def _token_response(status: int, payload: dict) -> RawResponse:  # type: ignore[type-arg]
    return RawResponse(status=status, headers=Headers(), body=json.dumps(payload).encode())


def _form(body: bytes | None) -> dict[str, list[str]]:
    return parse_qs((body or b"").decode())


# ---------------------------------------------------------------------------
# Permission
# ---------------------------------------------------------------------------


class TestPermission:
    @pytest.mark.parametrize(
        ("permission", "expected"),
        [
            (Permission.new_read(), "files.read"),
            (Permission(write=True), "files.readwrite"),
            (Permission(access_shared=True), "files.read.all"),
            (Permission(write=True, access_shared=True), "files.readwrite.all"),
            (Permission(offline_access=True), "offline_access files.read"),
            (
                Permission(write=True, access_shared=True, offline_access=True),
                "offline_access files.readwrite.all",
            ),
        ],
    )
    def test_scope_string(self, permission: Permission, expected: str) -> None:
        assert permission.to_scope_string() == expected


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class TestAuthentication:
    def test_code_auth_url(self) -> None:
        url = urlparse(_auth().code_auth_url())
        query = parse_qs(url.query)

        assert url.netloc == "login.microsoftonline.com"
        assert url.path == "/common/oauth2/v2.0/authorize"
        assert query["client_id"] == ["test-client-id"]
        assert query["scope"] == ["offline_access files.readwrite"]
        assert query["redirect_uri"] == [REDIRECT_URI]
        assert query["response_type"] == ["code"]

    def test_token_auth_url_uses_token_response_type(self) -> None:
        query = parse_qs(urlparse(_auth().token_auth_url()).query)

        assert query["response_type"] == ["token"]

    def test_login_with_code_posts_form(self) -> None:
        api = _auth().login_with_code("the-code", ClientCredential.from_secret("s3cret"))

        request = api.to_request()
        form = _form(request.body)

        assert request.method == "POST"
        assert request.url == "https://login.microsoftonline.com/common/oauth2/v2.0/token"
        assert "Authorization" not in request.headers
        assert form["grant_type"] == ["authorization_code"]
        assert form["code"] == ["the-code"]
        assert form["client_secret"] == ["s3cret"]

    def test_login_with_code_parses_token(self) -> None:
        api = _auth().login_with_code("the-code", ClientCredential.none())

        token = api.parse(
            _token_response(
                200, {"access_token": "at", "refresh_token": "rt", "expires_in": 3600}
            )
        )

        assert token.access_token == "at"
        assert token.refresh_token == "rt"
        assert token.expires_in == 3600

    def test_missing_refresh_token_with_offline_access(self) -> None:
        api = _auth(offline_access=True).login_with_code("c", ClientCredential.none())

        with pytest.raises(UnexpectedResponse, match="refresh_token"):
            api.parse(_token_response(200, {"access_token": "at"}))

    def test_missing_refresh_token_without_offline_access_is_fine(self) -> None:
        api = _auth(offline_access=False).login_with_code("c", ClientCredential.none())

        token = api.parse(_token_response(200, {"access_token": "at"}))

        assert token.refresh_token is None

    def test_rejected_code_is_oauth2_error(self) -> None:
        api = _auth().login_with_code("expired", ClientCredential.none())

        with pytest.raises(OAuth2Error) as exc_info:
            api.parse(
                _token_response(
                    400,
                    {
                        "error": "invalid_grant",
                        "error_description": "AADSTS70000: code expired",
                        "error_codes": [70000],
                    },
                )
            )

        assert exc_info.value.status == 400
        assert exc_info.value.error_codes == [70000]

    def test_login_with_refresh_token_with_assertion(self) -> None:
        api = _auth().login_with_refresh_token("rt", ClientCredential.from_assertion("jwt"))

        form = _form(api.to_request().body)

        assert form["grant_type"] == ["refresh_token"]
        assert form["refresh_token"] == ["rt"]
        assert form["client_assertion"] == ["jwt"]
        assert form["client_assertion_type"] == [
            "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
        ]

    def test_login_with_refresh_token_requires_offline_access(self) -> None:
        with pytest.raises(RuntimeError):
            _auth(offline_access=False).login_with_refresh_token("rt", ClientCredential.none())

    def test_tenant_in_token_endpoint(self) -> None:
        auth = Authentication("cid", Permission.new_read(), REDIRECT_URI, tenant="consumers")

        assert auth.token_endpoint == (
            "https://login.microsoftonline.com/consumers/oauth2/v2.0/token"
        )


# ---------------------------------------------------------------------------
# AppTokenProvider
# ---------------------------------------------------------------------------


class TestAppTokenProvider:
    def test_msal_app_created_with_correct_authority(self) -> None:
        with patch("onedrive_api.graph.auth.msal.ConfidentialClientApplication") as mock_msal:
            AppTokenProvider("cid", "csecret", "tid-001")
            mock_msal.assert_called_once_with(
                client_id="cid",
                client_credential="csecret",
                authority="https://login.microsoftonline.com/tid-001",
            )

    def test_returns_token_on_success(self) -> None:
        with patch("onedrive_api.graph.auth.msal.ConfidentialClientApplication") as mock_msal:
            provider = AppTokenProvider("cid", "csecret", "tid")
        mock_msal.return_value.acquire_token_for_client.return_value = {
            "access_token": "fake-token-abc"
        }

        assert provider.acquire_token() == "fake-token-abc"
        mock_msal.return_value.acquire_token_for_client.assert_called_once_with(
            scopes=["https://graph.microsoft.com/.default"]
        )

    def test_raises_oauth2_error_on_failure(self) -> None:
        with patch("onedrive_api.graph.auth.msal.ConfidentialClientApplication") as mock_msal:
            provider = AppTokenProvider("cid", "csecret", "tid")
        mock_msal.return_value.acquire_token_for_client.return_value = {
            "error": "invalid_client",
            "error_description": "Client secret is wrong",
        }

        with pytest.raises(OAuth2Error, match="invalid_client") as exc_info:
            provider.acquire_token()

        assert exc_info.value.status is None
