"""Credential and token services."""

from .credential_store import CredentialStore
from .oauth_flow import AuthorizationCodeFlow
from .token_refresher import TokenGrant, TokenRefresher
from .token_service import TokenLifecycleManager, TokenSweepResult

__all__ = [
    "AuthorizationCodeFlow",
    "CredentialStore",
    "TokenGrant",
    "TokenLifecycleManager",
    "TokenRefresher",
    "TokenSweepResult",
]
