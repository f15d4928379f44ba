"""API dependencies for token services and common parameters."""

from typing import Annotated

from fastapi import Depends

from spstorage.config import get_settings
from spstorage.database import DbSession, get_db
from spstorage.services.credential_store import CredentialStore
from spstorage.services.token_refresher import TokenRefresher
from spstorage.services.token_service import TokenLifecycleManager

# Re-export for convenience
__all__ = [
    "DbSession",
    "TokenManager",
    "get_db",
    "get_token_manager",
]


def get_token_manager(db: DbSession) -> TokenLifecycleManager:
    """Build a token lifecycle manager bound to the request's session."""
    settings = get_settings()
    return TokenLifecycleManager(
        store=CredentialStore(db),
        refresher=TokenRefresher(timeout=settings.token_request_timeout),
        expiry_margin_seconds=settings.token_expiry_margin_seconds,
    )


# Type alias for dependency injection
TokenManager = Annotated[TokenLifecycleManager, Depends(get_token_manager)]
