"""Graph credential SQLAlchemy model for delegated OAuth2 tokens."""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from spstorage.database import Base

# scope_id value for credentials keyed by identity only
IDENTITY_SCOPE = 0


class GraphCredential(Base):
    """One delegated credential per (scope_id, identity).

    A scope_id of 0 means the credential is not tied to a specific mount.
    Rows are updated in place on every refresh; the identity provider may
    rotate the refresh token, so it is overwritten together with the
    access token.
    """

    __tablename__ = "graph_credentials"
    __table_args__ = (
        UniqueConstraint("scope_id", "identity", name="uq_graph_credentials_scope_identity"),
        Index("ix_graph_credentials_expires_at", "expires_at"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    scope_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=IDENTITY_SCOPE,
    )
    identity: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    tenant: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    access_token: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    refresh_token: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<GraphCredential scope={self.scope_id} identity={self.identity}>"
