"""Repository for User persistence, including magic link token state.

SQLAlchemy implementation of the UserRepository contract. Every write
commits its own transaction: an issued token must be durable before the
email carrying it leaves the process.
"""

import logging
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.user import User
from app.repositories.base import RepositoryError, UserRepository

logger = logging.getLogger(__name__)

# Fields that may be updated via SqlUserRepository.update().
# Security: Never add 'id', 'email', 'created_at', or 'updated_at'.
# - id: primary key, immutable
# - email: unique identity, requires dedicated flow with re-verification
# - created_at/updated_at: server-managed timestamps
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "verified",
        "magic_link_token",
        "magic_link_expires",
        "magic_link_used",
    }
)


class SqlUserRepository:
    """User repository bound to one AsyncSession.

    Args:
        db: Async database session. The repository commits after each
            write; reads never commit.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key.

        Returns:
            User if found, None otherwise.

        Raises:
            RepositoryError: If the database call fails.
        """
        try:
            return await self._db.get(User, user_id)
        except SQLAlchemyError as exc:
            raise RepositoryError("User lookup by id failed") from exc

    async def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email address (case-insensitive).

        Returns:
            User if found, None otherwise.

        Raises:
            RepositoryError: If the database call fails.
        """
        stmt = select(User).where(User.email == email.strip().lower())
        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as exc:
            raise RepositoryError("User lookup by email failed") from exc
        return result.scalar_one_or_none()

    async def create(self, *, email: str, name: str | None = None) -> User:
        """Create a new unverified user.

        Email is normalized to lowercase before storage.

        Returns:
            Created User with database-generated fields populated.

        Raises:
            RepositoryError: If the insert fails, including a unique email
                violation from a concurrent signup.
        """
        user = User(email=email.strip().lower(), name=name, verified=False)
        self._db.add(user)
        await self._commit("User insert failed")
        await self._refresh(user)
        return user

    async def update(
        self,
        user_id: uuid.UUID,
        **fields: str | datetime | bool | None,
    ) -> User | None:
        """Update user fields.

        Only fields in _UPDATABLE_FIELDS are allowed. Unknown field names
        raise ValueError.

        Returns:
            Updated User if found, None if user does not exist.

        Raises:
            ValueError: If an unknown field name is passed.
            RepositoryError: If the database call fails.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        user = await self.get_by_id(user_id)
        if user is None:
            return None

        for field, value in fields.items():
            setattr(user, field, value)

        await self._commit("User update failed")
        await self._refresh(user)
        return user

    async def consume_active_token(
        self, token_hash: str, *, now: datetime
    ) -> User | None:
        """Atomically consume a magic link token.

        One conditional UPDATE ... RETURNING: the row only changes if the
        digest matches, the token is unused and not yet expired. Under
        concurrent callers the database's row lock lets exactly one UPDATE
        see the matching row; the others re-evaluate the WHERE clause
        against the committed row and match nothing.

        Args:
            token_hash: SHA-256 digest of the presented token.
            now: Current time used for the expiry predicate.

        Returns:
            The verified User, or None if no active token matched.

        Raises:
            RepositoryError: If the database call fails.
        """
        stmt = (
            update(User)
            .where(
                User.magic_link_token == token_hash,
                User.magic_link_used.is_(False),
                User.magic_link_expires > now,
            )
            .values(
                verified=True,
                magic_link_token=None,
                magic_link_expires=None,
                magic_link_used=True,
            )
            .returning(User)
            .execution_options(synchronize_session="fetch", populate_existing=True)
        )
        try:
            result = await self._db.execute(stmt)
            user = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            raise RepositoryError("Token consumption failed") from exc
        await self._commit("Token consumption commit failed")
        return user

    async def clear_expired_tokens(self, *, now: datetime) -> int:
        """Clear token state for every user whose link expired before now.

        Users without an outstanding token are not touched.

        Returns:
            Number of users whose token fields were cleared.

        Raises:
            RepositoryError: If the database call fails.
        """
        stmt = (
            update(User)
            .where(
                User.magic_link_token.is_not(None),
                User.magic_link_expires < now,
            )
            .values(
                magic_link_token=None,
                magic_link_expires=None,
                magic_link_used=False,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as exc:
            await self._db.rollback()
            raise RepositoryError("Expired token cleanup failed") from exc
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        await self._commit("Expired token cleanup commit failed")
        return row_count

    async def _commit(self, failure_message: str) -> None:
        try:
            await self._db.commit()
        except SQLAlchemyError as exc:
            logger.error("%s: %s", failure_message, exc)
            await self._db.rollback()
            raise RepositoryError(failure_message) from exc

    async def _refresh(self, user: User) -> None:
        try:
            await self._db.refresh(user)
        except SQLAlchemyError as exc:
            raise RepositoryError("User reload failed") from exc


def sql_repository_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], AbstractAsyncContextManager[UserRepository]]:
    """Build a RepositoryScope that opens a fresh session per unit of work."""

    @asynccontextmanager
    async def scope() -> AsyncIterator[UserRepository]:
        async with session_factory() as db:
            yield SqlUserRepository(db)

    return scope
