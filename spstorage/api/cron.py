"""Cron job endpoints for background processing.

Protected by CRON_SECRET bearer token authentication.
These endpoints should be called by an external scheduler once a day.
"""

import hmac
from datetime import UTC, datetime

from fastapi import APIRouter, Header, HTTPException, status

from spstorage.api.deps import TokenManager
from spstorage.config import get_settings
from spstorage.core.logging import get_logger
from spstorage.schemas.cron import TokenSweepResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


def verify_cron_secret(authorization: str | None) -> bool:
    """Verify CRON_SECRET bearer token."""
    settings = get_settings()
    if not settings.cron_secret:
        logger.warning("cron_secret_not_configured")
        return False

    if not authorization:
        return False

    if not authorization.startswith("Bearer "):
        return False

    token = authorization[7:]  # Remove "Bearer " prefix
    return hmac.compare_digest(token.encode(), settings.cron_secret.encode())


@router.get("/refresh-tokens", response_model=TokenSweepResponse)
async def refresh_tokens(
    token_manager: TokenManager,
    authorization: str | None = Header(None),
) -> TokenSweepResponse:
    """Refresh every stored Graph credential nearing expiry.

    Processing flow:
    1. Verify CRON_SECRET bearer token
    2. Skip when no client credentials are configured
    3. Refresh all credentials expiring within the sweep margin
    4. Return summary; failures are reported, never raised
    """
    if not verify_cron_secret(authorization):
        logger.warning("cron_unauthorized_request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing CRON_SECRET",
        )

    settings = get_settings()
    timestamp = datetime.now(UTC).isoformat()

    if not settings.is_graph_configured:
        logger.info("token_sweep_skipped_not_configured")
        return TokenSweepResponse(
            status="skipped",
            errors=["Graph client credentials not configured"],
            timestamp=timestamp,
        )

    try:
        result = await token_manager.refresh_all_due(
            tenant=settings.resolve_tenant(None),
            client_id=settings.graph_client_id,
            client_secret=settings.graph_client_secret,
            safety_margin_seconds=settings.token_sweep_margin_seconds,
        )
    except Exception as e:
        logger.exception("token_sweep_error", error=str(e))
        return TokenSweepResponse(
            status="error",
            errors=[str(e)],
            timestamp=timestamp,
        )

    return TokenSweepResponse(
        status="success",
        due=result.due,
        refreshed=result.refreshed,
        failed=result.failed,
        errors=result.errors,
        timestamp=timestamp,
    )
