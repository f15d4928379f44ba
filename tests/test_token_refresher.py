"""Tests for TokenRefresher refresh-token exchange."""

from urllib.parse import parse_qs

import httpx
import pytest

from spstorage.core.exceptions import (
    MissingRefreshTokenError,
    TokenEndpointError,
    TokenResponseError,
    TokenTransportError,
)
from spstorage.services.token_refresher import (
    DEFAULT_EXPIRES_IN,
    TOKEN_REQUEST_SCOPE,
    TokenGrant,
    TokenRefresher,
    token_endpoint,
)


def make_refresher(handler) -> TokenRefresher:
    """TokenRefresher over an httpx.MockTransport handler."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TokenRefresher(http_client=client, timeout=5.0)


class TestTokenEndpoint:
    """Tests for token_endpoint URL builder."""

    def test_builds_v2_endpoint(self):
        """Tenant is embedded in the v2.0 token URL."""
        assert (
            token_endpoint("contoso.onmicrosoft.com")
            == "https://login.microsoftonline.com/contoso.onmicrosoft.com/oauth2/v2.0/token"
        )

    def test_scope_includes_offline_access(self):
        """Refresh requests ask for offline_access plus the Graph scopes."""
        assert TOKEN_REQUEST_SCOPE.split() == [
            "offline_access",
            "Files.ReadWrite.All",
            "Sites.ReadWrite.All",
            "User.Read",
        ]


class TestTokenGrant:
    """Tests for TokenGrant.from_response."""

    def test_decodes_complete_response(self):
        """All three fields are decoded."""
        grant = TokenGrant.from_response(
            {"access_token": "a", "refresh_token": "r", "expires_in": "1800"}
        )
        assert grant == TokenGrant("a", "r", 1800)

    def test_defaults_expires_in(self):
        """Missing expires_in defaults to one hour."""
        grant = TokenGrant.from_response({"access_token": "a", "refresh_token": "r"})
        assert grant.expires_in == DEFAULT_EXPIRES_IN

    def test_missing_access_token_raises(self):
        """Missing access_token is a response error."""
        with pytest.raises(TokenResponseError, match="access_token"):
            TokenGrant.from_response({"refresh_token": "r"})

    def test_missing_refresh_token_raises(self):
        """Missing refresh_token is a response error."""
        with pytest.raises(TokenResponseError, match="refresh_token"):
            TokenGrant.from_response({"access_token": "a"})


class TestTokenRefresherRefresh:
    """Tests for TokenRefresher.refresh."""

    @pytest.mark.asyncio
    async def test_posts_form_and_returns_grant(self):
        """A refresh POSTs the refresh_token grant and decodes the reply."""
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["form"] = parse_qs(request.content.decode())
            return httpx.Response(
                200,
                json={
                    "access_token": "new-access",
                    "refresh_token": "rotated-refresh",
                    "expires_in": 3599,
                },
            )

        refresher = make_refresher(handler)
        grant = await refresher.refresh("old-refresh", "contoso.com", "cid", "secret")

        assert grant.access_token == "new-access"
        assert grant.refresh_token == "rotated-refresh"
        assert grant.expires_in == 3599
        assert captured["url"] == token_endpoint("contoso.com")
        assert captured["form"]["grant_type"] == ["refresh_token"]
        assert captured["form"]["refresh_token"] == ["old-refresh"]
        assert captured["form"]["client_id"] == ["cid"]
        assert captured["form"]["client_secret"] == ["secret"]
        assert captured["form"]["scope"] == [TOKEN_REQUEST_SCOPE]

    @pytest.mark.asyncio
    async def test_empty_refresh_token_raises_without_request(self):
        """No request is made when there is nothing to exchange."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        refresher = make_refresher(handler)

        with pytest.raises(MissingRefreshTokenError):
            await refresher.refresh("", "common", "cid", "secret")
        assert calls == []

    @pytest.mark.asyncio
    async def test_transport_error_raises_transport_error(self):
        """Network failures map to TokenTransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        refresher = make_refresher(handler)

        with pytest.raises(TokenTransportError):
            await refresher.refresh("r", "common", "cid", "secret")

    @pytest.mark.asyncio
    async def test_non_success_status_with_json_error(self):
        """A 400 with an OAuth error body is an endpoint error, not success."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400,
                json={
                    "error": "invalid_grant",
                    "error_description": "AADSTS70000: refresh token expired",
                },
            )

        refresher = make_refresher(handler)

        with pytest.raises(TokenEndpointError) as exc_info:
            await refresher.refresh("r", "common", "cid", "secret")

        assert exc_info.value.status_code == 400
        assert exc_info.value.error_code == "invalid_grant"
        assert "AADSTS70000" in exc_info.value.error_description

    @pytest.mark.asyncio
    async def test_non_success_status_even_with_access_token(self):
        """A non-2xx status is never trusted, whatever the body holds."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                500, json={"access_token": "a", "refresh_token": "r"}
            )

        refresher = make_refresher(handler)

        with pytest.raises(TokenEndpointError):
            await refresher.refresh("r", "common", "cid", "secret")

    @pytest.mark.asyncio
    async def test_error_field_in_success_status(self):
        """An error field in a 200 body is still an endpoint error."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"error": "interaction_required", "access_token": "a"},
            )

        refresher = make_refresher(handler)

        with pytest.raises(TokenEndpointError) as exc_info:
            await refresher.refresh("r", "common", "cid", "secret")
        assert exc_info.value.error_code == "interaction_required"

    @pytest.mark.asyncio
    async def test_non_json_body_raises_response_error(self):
        """A 200 with a non-JSON body is a response error."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        refresher = make_refresher(handler)

        with pytest.raises(TokenResponseError):
            await refresher.refresh("r", "common", "cid", "secret")

    @pytest.mark.asyncio
    async def test_missing_refresh_token_in_response(self):
        """A 200 without refresh_token is a response error."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"access_token": "a", "expires_in": 3600})

        refresher = make_refresher(handler)

        with pytest.raises(TokenResponseError):
            await refresher.refresh("r", "common", "cid", "secret")
