"""Credential store for delegated Graph OAuth2 tokens.

Persistence only: lookup, upsert, in-place token updates, expiry scans
and administrative deletion. Token policy lives in token_service.

Database failures surface as CredentialStoreError after the session is
rolled back.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from spstorage.core.exceptions import CredentialStoreError
from spstorage.core.logging import get_logger
from spstorage.models.credential import GraphCredential

logger = get_logger(__name__)


class CredentialStore:
    """Async CRUD operations for GraphCredential rows.

    Mutations are committed immediately: a rotated refresh token must
    survive any later rollback of the surrounding unit of work.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _guard(self, operation: str, **context: Any) -> AsyncIterator[None]:
        """Translate SQLAlchemy errors into CredentialStoreError."""
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(
                "credential_store_failed",
                operation=operation,
                error_type=type(e).__name__,
                error=str(e),
                **context,
            )
            try:
                await self.db.rollback()
            except SQLAlchemyError:
                logger.exception("credential_store_rollback_failed", operation=operation)
            raise CredentialStoreError(
                f"Credential store {operation} failed: {type(e).__name__}"
            ) from e

    async def get(self, scope_id: int, identity: str) -> GraphCredential | None:
        """Load the credential for (scope_id, identity).

        Args:
            scope_id: Mount scope (0 for identity-only credentials)
            identity: Host application user id

        Returns:
            GraphCredential if found, None otherwise

        Raises:
            CredentialStoreError: If the database query fails
        """
        async with self._guard("get", scope_id=scope_id, identity=identity):
            result = await self.db.execute(
                select(GraphCredential)
                .where(
                    GraphCredential.scope_id == scope_id,
                    GraphCredential.identity == identity,
                )
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def upsert(
        self,
        scope_id: int,
        identity: str,
        tenant: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
        now: datetime,
    ) -> GraphCredential:
        """Insert or overwrite the credential for (scope_id, identity).

        Returns:
            The stored GraphCredential
        """
        credential = await self.get(scope_id, identity)

        async with self._guard("upsert", scope_id=scope_id, identity=identity):
            if credential is None:
                credential = GraphCredential(
                    scope_id=scope_id,
                    identity=identity,
                    tenant=tenant,
                    access_token=access_token,
                    refresh_token=refresh_token,
                    expires_at=expires_at,
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(credential)
                created = True
            else:
                credential.tenant = tenant
                credential.access_token = access_token
                credential.refresh_token = refresh_token
                credential.expires_at = expires_at
                credential.updated_at = now
                created = False

            await self.db.commit()

        logger.info(
            "graph_credential_stored",
            scope_id=scope_id,
            identity=identity,
            tenant=tenant,
            created=created,
        )
        return credential

    async def update_tokens(
        self,
        credential: GraphCredential,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
        now: datetime,
    ) -> GraphCredential:
        """Overwrite the token fields of an existing credential in place."""
        async with self._guard("update_tokens"):
            credential.access_token = access_token
            credential.refresh_token = refresh_token
            credential.expires_at = expires_at
            credential.updated_at = now

            await self.db.commit()
        return credential

    async def list_due(self, threshold: datetime) -> list[GraphCredential]:
        """Return every credential expiring at or before threshold."""
        async with self._guard("list_due"):
            result = await self.db.execute(
                select(GraphCredential)
                .where(GraphCredential.expires_at <= threshold)
                .order_by(GraphCredential.expires_at)
            )
            return list(result.scalars().all())

    async def delete_for_scope(self, scope_id: int) -> int:
        """Delete all credentials of a mount scope.

        Returns:
            Number of rows deleted
        """
        async with self._guard("delete_for_scope", scope_id=scope_id):
            result = await self.db.execute(
                delete(GraphCredential).where(GraphCredential.scope_id == scope_id)
            )
            await self.db.commit()

        logger.info("graph_credentials_deleted", scope_id=scope_id, count=result.rowcount)
        return result.rowcount

    async def delete_for_identity(self, identity: str) -> int:
        """Delete all credentials of an identity across scopes.

        Returns:
            Number of rows deleted
        """
        async with self._guard("delete_for_identity", identity=identity):
            result = await self.db.execute(
                delete(GraphCredential).where(GraphCredential.identity == identity)
            )
            await self.db.commit()

        logger.info("graph_credentials_deleted", identity=identity, count=result.rowcount)
        return result.rowcount
