"""MSAL-backed authorization-code flow for delegated Graph consent.

Two steps, driven by the browser redirect flow in the host application:
1. build the authorization URL the user is sent to
2. exchange the returned authorization code for the initial token set

The token set from step 2 seeds the credential store; all later refreshes
go through TokenRefresher.
"""

import asyncio
from typing import Any

import msal

from spstorage.core.exceptions import TokenEndpointError, TokenResponseError
from spstorage.core.logging import get_logger
from spstorage.services.token_refresher import AUTHORITY_BASE_URL, GRAPH_DELEGATED_SCOPES

logger = get_logger(__name__)


class AuthorizationCodeFlow:
    """Authorization URL builder and code exchange for one application.

    Attributes:
        tenant: Tenant the flow authenticates against
        _msal_app: MSAL ConfidentialClientApplication instance
    """

    def __init__(self, client_id: str, client_secret: str, tenant: str) -> None:
        """Create the MSAL confidential client for the tenant authority.

        Args:
            client_id: Application (client) id
            client_secret: Application client secret
            tenant: Tenant id, domain, or "common"
        """
        self.tenant = tenant
        authority = f"{AUTHORITY_BASE_URL}/{tenant}"

        logger.debug(
            "oauth_msal_app_creating",
            authority=authority,
            client_id=client_id[:8] + "..." if client_id else "not_set",
        )

        self._msal_app = msal.ConfidentialClientApplication(
            client_id=client_id,
            client_credential=client_secret,
            authority=authority,
        )

    def build_authorization_url(self, redirect_uri: str, state: str | None = None) -> str:
        """Build the consent URL for the fixed delegated scope set.

        MSAL appends offline_access itself, so the consent includes a
        refresh token.
        """
        return self._msal_app.get_authorization_request_url(
            GRAPH_DELEGATED_SCOPES,
            redirect_uri=redirect_uri,
            state=state,
        )

    async def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]:
        """Exchange an authorization code for the initial token set.

        Returns:
            Token response containing access_token, refresh_token and
            expires_in

        Raises:
            TokenEndpointError: If the identity provider returns an error
            TokenResponseError: If the response has no access token
        """
        result = await asyncio.to_thread(
            self._msal_app.acquire_token_by_authorization_code,
            code,
            scopes=GRAPH_DELEGATED_SCOPES,
            redirect_uri=redirect_uri,
        )
        return self._handle_auth_result(result)

    def _handle_auth_result(self, result: dict[str, Any] | None) -> dict[str, Any]:
        """Process an MSAL result dictionary.

        Raises:
            TokenResponseError: If result is None or lacks access_token
            TokenEndpointError: If result contains an error
        """
        if result is None:
            logger.error("oauth_code_exchange_failed", reason="null_result")
            raise TokenResponseError("Code exchange failed: no result from MSAL")

        if "error" in result:
            error_code = result.get("error", "unknown")
            error_description = result.get("error_description", "No description")

            logger.error(
                "oauth_code_exchange_failed",
                error_code=error_code,
                error_description=error_description[:100],
            )
            raise TokenEndpointError(
                f"Code exchange failed: {error_code} - {error_description}",
                error_code=error_code,
                error_description=error_description,
            )

        if not result.get("access_token"):
            logger.error("oauth_code_exchange_failed", reason="missing_access_token")
            raise TokenResponseError("Code exchange failed: access_token not in response")

        logger.info(
            "oauth_code_exchanged",
            tenant=self.tenant,
            expires_in=result.get("expires_in"),
            has_refresh_token=bool(result.get("refresh_token")),
        )
        return result
