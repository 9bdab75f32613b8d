"""Create users table with embedded magic link token state.

Revision ID: 001_users_magic_link
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_users_magic_link"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # id is generated by the application (uuid4), no server default needed
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column(
            "verified", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        # SHA-256 hex digest of the active token, never the token itself
        sa.Column("magic_link_token", sa.String(64), nullable=True),
        sa.Column("magic_link_expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "magic_link_used",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("email", name="users_email_key"),
        sa.UniqueConstraint("magic_link_token", name="users_magic_link_token_key"),
    )

    # Reaper sweep: only rows with an outstanding link
    op.create_index(
        "ix_users_magic_link_expires",
        "users",
        ["magic_link_expires"],
        postgresql_where=sa.text("magic_link_token IS NOT NULL"),
    )


def downgrade() -> None:
    op.drop_index("ix_users_magic_link_expires", table_name="users")
    op.drop_table("users")
