"""User model - identity record with embedded magic link token state.

The token triple (magic_link_token, magic_link_expires, magic_link_used)
lives on the user row: issuing a new link overwrites the previous one, so a
user has at most one active link at any time.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """User account for passwordless authentication.

    Attributes:
        id: UUID primary key.
        email: Unique email address, stored lowercased.
        name: Optional display name.
        verified: True once any magic link for this user has been consumed.
        magic_link_token: SHA-256 hex digest of the active token. NULL when
            no link is outstanding (never issued, consumed, or reaped).
        magic_link_expires: Absolute expiry of the active token.
        magic_link_used: True once the last issued token was consumed.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "users"
    __table_args__ = (
        # Reaper sweep only scans rows with an outstanding link
        Index(
            "ix_users_magic_link_expires",
            "magic_link_expires",
            postgresql_where=text("magic_link_token IS NOT NULL"),
        ),
    )

    # Generated client side so the model works on PostgreSQL and SQLite alike
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    magic_link_token: Mapped[str | None] = mapped_column(
        String(64),
        unique=True,
        nullable=True,
    )
    magic_link_expires: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )
    magic_link_used: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
