"""Token lifecycle management for delegated Graph credentials.

Serves a currently valid access token per (scope_id, identity):
- Fast path: cached token returned while it is outside the expiry margin
- Slow path: synchronous refresh through TokenRefresher, persisted in place
- Sweep: refresh every credential nearing expiry (daily scheduler job)

Concurrent callers for the same key are not serialized. Two requests that
both see a near-expiry token may both refresh; the last writer wins and a
caller left holding a revoked refresh token recovers on its next
get_valid_access_token call.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from spstorage.core.exceptions import (
    CredentialStoreError,
    TokenError,
    TokenResponseError,
)
from spstorage.core.logging import get_logger
from spstorage.models.credential import GraphCredential
from spstorage.services.credential_store import CredentialStore
from spstorage.services.token_refresher import TokenGrant, TokenRefresher

logger = get_logger(__name__)

# Safety window before access token expiry
EXPIRY_MARGIN_SECONDS = 120

# Default look-ahead for the periodic sweep
SWEEP_MARGIN_SECONDS = 300


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes loaded from the database as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass
class TokenSweepResult:
    """Outcome of a refresh_all_due sweep."""

    due: int = 0
    refreshed: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


class TokenLifecycleManager:
    """Serves valid access tokens and keeps stored credentials fresh."""

    def __init__(
        self,
        store: CredentialStore,
        refresher: TokenRefresher,
        expiry_margin_seconds: int = EXPIRY_MARGIN_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.refresher = refresher
        self.expiry_margin = timedelta(seconds=expiry_margin_seconds)
        self._clock = clock

    async def store_initial_token(
        self,
        scope_id: int,
        identity: str,
        tenant: str,
        token_response: dict[str, Any],
    ) -> GraphCredential | None:
        """Persist the token set from an authorization-code exchange.

        Args:
            scope_id: Mount scope (0 for identity-only credentials)
            identity: Host application user id
            tenant: Tenant the tokens were issued for
            token_response: Raw token endpoint response body

        Returns:
            Stored GraphCredential, or None when the response lacks an
            access or refresh token
        """
        try:
            grant = TokenGrant.from_response(token_response)
        except TokenResponseError as e:
            logger.warning(
                "initial_token_rejected",
                scope_id=scope_id,
                identity=identity,
                reason=str(e),
            )
            return None

        now = self._clock()
        return await self.store.upsert(
            scope_id=scope_id,
            identity=identity,
            tenant=tenant,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=now + timedelta(seconds=grant.expires_in),
            now=now,
        )

    async def get_valid_access_token(
        self,
        scope_id: int,
        identity: str,
        tenant: str,
        client_id: str,
        client_secret: str,
    ) -> str | None:
        """Return a currently valid access token for (scope_id, identity).

        No credential row means no token: initial tokens only come from the
        authorization-code flow. Refresh failures are not retried here.

        Returns:
            Access token string, or None if none could be obtained

        Raises:
            CredentialStoreError: If the credential cannot be loaded
        """
        credential = await self.store.get(scope_id, identity)
        if credential is None:
            logger.debug(
                "access_token_no_credential",
                scope_id=scope_id,
                identity=identity,
            )
            return None

        if credential.access_token and self._is_fresh(credential, self.expiry_margin):
            return credential.access_token

        updated = await self._refresh_credential(
            credential, tenant, client_id, client_secret
        )
        if updated is None:
            return None
        return updated.access_token

    async def refresh_all_due(
        self,
        tenant: str,
        client_id: str,
        client_secret: str,
        safety_margin_seconds: int = SWEEP_MARGIN_SECONDS,
    ) -> TokenSweepResult:
        """Refresh every credential expiring within safety_margin_seconds.

        Each credential is refreshed independently; a failure is logged
        and recorded without aborting the rest of the sweep.
        """
        now = self._clock()
        threshold = now + timedelta(seconds=safety_margin_seconds)
        due = await self.store.list_due(threshold)

        result = TokenSweepResult(due=len(due))
        logger.info(
            "token_sweep_started",
            due=result.due,
            margin_seconds=safety_margin_seconds,
        )

        # Rows are reloaded one by one: a rollback after a failed row
        # expires every instance loaded by the scan.
        keys = [(credential.scope_id, credential.identity) for credential in due]

        for scope_id, identity in keys:
            try:
                credential = await self.store.get(scope_id, identity)
            except CredentialStoreError as e:
                logger.warning(
                    "token_sweep_row_failed",
                    scope_id=scope_id,
                    identity=identity,
                    error=str(e),
                )
                updated = None
            else:
                if credential is None:
                    logger.info(
                        "token_sweep_row_removed", scope_id=scope_id, identity=identity
                    )
                    continue
                updated = await self._refresh_credential(
                    credential, tenant, client_id, client_secret
                )

            if updated is None:
                result.failed += 1
                result.errors.append(f"scope={scope_id} identity={identity}")
            else:
                result.refreshed += 1

        logger.info(
            "token_sweep_completed",
            due=result.due,
            refreshed=result.refreshed,
            failed=result.failed,
        )
        return result

    async def revoke_scope(self, scope_id: int) -> int:
        """Delete all credentials tied to a mount scope."""
        return await self.store.delete_for_scope(scope_id)

    async def revoke_identity(self, identity: str) -> int:
        """Delete all credentials of an identity."""
        return await self.store.delete_for_identity(identity)

    def _is_fresh(self, credential: GraphCredential, margin: timedelta) -> bool:
        return self._clock() < as_utc(credential.expires_at) - margin

    async def _refresh_credential(
        self,
        credential: GraphCredential,
        tenant: str,
        client_id: str,
        client_secret: str,
    ) -> GraphCredential | None:
        """Refresh one credential and persist the new token set.

        Returns:
            Updated GraphCredential, or None on any token or store error
        """
        scope_id, identity = credential.scope_id, credential.identity

        try:
            grant = await self.refresher.refresh(
                credential.refresh_token,
                tenant or credential.tenant,
                client_id,
                client_secret,
            )
        except TokenError as e:
            logger.warning(
                "token_refresh_failed",
                scope_id=scope_id,
                identity=identity,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        now = self._clock()
        try:
            updated = await self.store.update_tokens(
                credential,
                access_token=grant.access_token,
                refresh_token=grant.refresh_token,
                expires_at=now + timedelta(seconds=grant.expires_in),
                now=now,
            )
        except CredentialStoreError as e:
            logger.error(
                "token_refresh_not_persisted",
                scope_id=scope_id,
                identity=identity,
                error=str(e),
            )
            return None

        logger.info(
            "token_refreshed",
            scope_id=scope_id,
            identity=identity,
            expires_in=grant.expires_in,
        )
        return updated
