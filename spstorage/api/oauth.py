"""OAuth consent endpoint for delegated Graph credentials.

Two-step flow driven by the browser-side integration:
  step=1: build the authorization URL and hand it to the browser
  step=2: exchange the authorization code and store the initial credential

Outcomes are reported in a {"status", "data"} envelope with HTTP 200.
"""

from fastapi import APIRouter

from spstorage.api.deps import TokenManager
from spstorage.config import get_settings
from spstorage.core.exceptions import SPStorageError
from spstorage.core.logging import get_logger
from spstorage.models.credential import IDENTITY_SCOPE
from spstorage.schemas.common import StatusResponse
from spstorage.schemas.oauth import OAuthConsentRequest
from spstorage.services.oauth_flow import AuthorizationCodeFlow

logger = get_logger(__name__)

router = APIRouter(prefix="/oauth", tags=["oauth"])


@router.post("", response_model=StatusResponse)
async def receive_token(
    request: OAuthConsentRequest,
    token_manager: TokenManager,
) -> StatusResponse:
    """Run one step of the authorization-code consent flow."""
    settings = get_settings()
    tenant = settings.resolve_tenant(request.tenant)
    redirect = request.redirect or settings.oauth_redirect_uri

    if not request.client_id or not request.client_secret or not redirect:
        message = "Missing client_id, client_secret or redirect parameter"
        logger.warning("oauth_request_invalid", reason=message, step=request.step)
        return StatusResponse.error(message)

    if request.step is None:
        logger.warning("oauth_request_invalid", reason="missing_step")
        return StatusResponse.error("Missing step parameter")

    flow = AuthorizationCodeFlow(request.client_id, request.client_secret, tenant)

    if request.step == 1:
        url = flow.build_authorization_url(redirect)
        logger.info("oauth_authorization_url_built", tenant=tenant)
        return StatusResponse.success(url=url)

    if request.step == 2:
        if not request.code:
            logger.warning("oauth_request_invalid", reason="missing_code")
            return StatusResponse.error("Missing authorization code")

        if not request.identity:
            logger.warning("oauth_request_invalid", reason="missing_identity")
            return StatusResponse.error("Missing identity for token exchange")

        try:
            token_response = await flow.exchange_code(request.code, redirect)
            credential = await token_manager.store_initial_token(
                IDENTITY_SCOPE,
                request.identity,
                tenant,
                token_response,
            )
        except SPStorageError as e:
            logger.error(
                "oauth_token_exchange_failed",
                identity=request.identity,
                error_type=type(e).__name__,
                error=str(e),
            )
            return StatusResponse.error(f"Exception during token exchange: {e}")

        if credential is None:
            return StatusResponse.error("Invalid token response from Microsoft")

        return StatusResponse.success(
            scope_id=credential.scope_id,
            identity=credential.identity,
            tenant=credential.tenant,
            expires_at=credential.expires_at.isoformat(),
        )

    logger.warning("oauth_request_invalid", reason="invalid_step", step=request.step)
    return StatusResponse.error("Invalid step parameter")
