"""Create graph_credentials table for delegated OAuth2 tokens.

Revision ID: 001
Revises:
Create Date: 2025-12-07

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "graph_credentials",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "scope_id", sa.Integer, nullable=False, server_default=sa.text("0")
        ),
        sa.Column("identity", sa.String(64), nullable=False),
        sa.Column("tenant", sa.String(255), nullable=False),
        sa.Column("access_token", sa.Text, nullable=True),
        sa.Column("refresh_token", sa.Text, nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "scope_id",
            "identity",
            name="uq_graph_credentials_scope_identity",
        ),
    )

    # Sweep queries filter on expiry
    op.create_index(
        "ix_graph_credentials_expires_at",
        "graph_credentials",
        ["expires_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_graph_credentials_expires_at", table_name="graph_credentials")
    op.drop_table("graph_credentials")
