"""Refresh-token exchange against the Microsoft identity platform.

Issues a form-encoded POST with grant_type=refresh_token to the tenant's
v2.0 token endpoint. Every failure is terminal for the call: there is no
retry or backoff here, the lifecycle manager decides what to do next.
"""

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from spstorage.core.exceptions import (
    MissingRefreshTokenError,
    TokenEndpointError,
    TokenResponseError,
    TokenTransportError,
)
from spstorage.core.logging import get_logger

logger = get_logger(__name__)

AUTHORITY_BASE_URL = "https://login.microsoftonline.com"

# Delegated Graph permissions requested at consent and on every refresh.
# offline_access is added separately: MSAL rejects it as a reserved scope
# but the raw token endpoint needs it to keep issuing refresh tokens.
GRAPH_DELEGATED_SCOPES = ["Files.ReadWrite.All", "Sites.ReadWrite.All", "User.Read"]
OFFLINE_ACCESS_SCOPE = "offline_access"
TOKEN_REQUEST_SCOPE = " ".join([OFFLINE_ACCESS_SCOPE, *GRAPH_DELEGATED_SCOPES])

# Lifetime assumed when the provider omits expires_in
DEFAULT_EXPIRES_IN = 3600


def token_endpoint(tenant: str) -> str:
    """Build the v2.0 token endpoint URL for a tenant."""
    return f"{AUTHORITY_BASE_URL}/{quote(tenant, safe='')}/oauth2/v2.0/token"


@dataclass(frozen=True)
class TokenGrant:
    """Token set issued by the identity provider."""

    access_token: str
    refresh_token: str
    expires_in: int = DEFAULT_EXPIRES_IN

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "TokenGrant":
        """Decode a token endpoint response body.

        Raises:
            TokenResponseError: If access_token or refresh_token is missing
        """
        access_token = data.get("access_token")
        refresh_token = data.get("refresh_token")

        if not access_token:
            raise TokenResponseError("Token response is missing access_token")
        if not refresh_token:
            raise TokenResponseError("Token response is missing refresh_token")

        try:
            expires_in = int(data.get("expires_in", DEFAULT_EXPIRES_IN))
        except (TypeError, ValueError):
            expires_in = DEFAULT_EXPIRES_IN

        return cls(
            access_token=str(access_token),
            refresh_token=str(refresh_token),
            expires_in=expires_in,
        )


class TokenRefresher:
    """Exchanges refresh tokens for new access tokens.

    Attributes:
        _client: Optional shared httpx.AsyncClient (a short-lived client
            is created per call when absent)
        _timeout: Request timeout in seconds
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._client = http_client
        self._timeout = timeout

    async def refresh(
        self,
        refresh_token: str | None,
        tenant: str,
        client_id: str,
        client_secret: str,
    ) -> TokenGrant:
        """Exchange a refresh token for a new token set.

        Args:
            refresh_token: Stored refresh token
            tenant: Tenant id or domain (or "common")
            client_id: Application (client) id
            client_secret: Application client secret

        Returns:
            TokenGrant carrying the new access token and the (possibly
            rotated) refresh token

        Raises:
            MissingRefreshTokenError: If refresh_token is empty
            TokenTransportError: On network errors or timeouts
            TokenEndpointError: On non-2xx status or an ``error`` body
            TokenResponseError: On non-JSON bodies or missing tokens
        """
        if not refresh_token:
            raise MissingRefreshTokenError("Credential has no refresh token")

        form = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": client_id,
            "client_secret": client_secret,
            "scope": TOKEN_REQUEST_SCOPE,
        }

        data = await self._post_token_request(tenant, form)
        grant = TokenGrant.from_response(data)

        logger.debug(
            "token_refresh_succeeded",
            tenant=tenant,
            expires_in=grant.expires_in,
            refresh_token_rotated=grant.refresh_token != refresh_token,
        )
        return grant

    async def _post_token_request(
        self,
        tenant: str,
        form: dict[str, str],
    ) -> dict[str, Any]:
        """POST a form to the token endpoint and return the checked JSON body."""
        url = token_endpoint(tenant)

        try:
            if self._client is not None:
                response = await self._client.post(url, data=form, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(url, data=form)
        except httpx.RequestError as e:
            logger.warning(
                "token_endpoint_transport_error",
                tenant=tenant,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise TokenTransportError(f"Token endpoint request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.is_success:
            error_code = data.get("error") if isinstance(data, dict) else None
            description = data.get("error_description") if isinstance(data, dict) else None
            logger.warning(
                "token_endpoint_rejected",
                tenant=tenant,
                status_code=response.status_code,
                error_code=error_code,
                error_description=(description or "")[:100],
            )
            raise TokenEndpointError(
                f"Token endpoint returned HTTP {response.status_code}: {error_code or 'unknown'}",
                status_code=response.status_code,
                error_code=error_code,
                error_description=description,
            )

        if not isinstance(data, dict):
            logger.warning(
                "token_endpoint_invalid_body",
                tenant=tenant,
                status_code=response.status_code,
            )
            raise TokenResponseError("Token endpoint returned a non-JSON body")

        if "error" in data:
            logger.warning(
                "token_endpoint_error_body",
                tenant=tenant,
                error_code=data.get("error"),
            )
            raise TokenEndpointError(
                f"Token endpoint returned error: {data.get('error')}",
                status_code=response.status_code,
                error_code=data.get("error"),
                error_description=data.get("error_description"),
            )

        return data
