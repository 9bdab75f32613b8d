"""Dict-backed UserRepository for tests and local experiments.

Mirrors SqlUserRepository semantics without a database. Token
consumption and expiry sweeps run under one asyncio.Lock so that
check-and-set is a single step, the same guarantee the SQL repository
gets from its conditional UPDATE.
"""

import asyncio
import uuid
from datetime import UTC, datetime

from app.models.user import User
from app.repositories.base import RepositoryError

_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "verified",
        "magic_link_token",
        "magic_link_expires",
        "magic_link_used",
    }
)


class InMemoryUserRepository:
    """In-process user store keyed by id.

    Users are transient User model instances (never attached to a session).
    """

    def __init__(self) -> None:
        self._users: dict[uuid.UUID, User] = {}
        self._lock = asyncio.Lock()

    @property
    def users(self) -> list[User]:
        """Snapshot of all stored users, in insertion order."""
        return list(self._users.values())

    async def get_by_id(self, user_id: uuid.UUID) -> User | None:
        return self._users.get(user_id)

    async def get_by_email(self, email: str) -> User | None:
        normalized = email.strip().lower()
        for user in self._users.values():
            if user.email == normalized:
                return user
        return None

    async def create(self, *, email: str, name: str | None = None) -> User:
        """Create a new unverified user.

        Raises:
            RepositoryError: If the email is already registered, matching
                the unique-constraint failure of the SQL repository.
        """
        normalized = email.strip().lower()
        async with self._lock:
            if any(u.email == normalized for u in self._users.values()):
                raise RepositoryError("User insert failed: email already registered")
            now = datetime.now(UTC)
            user = User(
                id=uuid.uuid4(),
                email=normalized,
                name=name,
                verified=False,
                magic_link_token=None,
                magic_link_expires=None,
                magic_link_used=False,
                created_at=now,
                updated_at=now,
            )
            self._users[user.id] = user
        return user

    async def update(
        self,
        user_id: uuid.UUID,
        **fields: str | datetime | bool | None,
    ) -> User | None:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        async with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            for field, value in fields.items():
                setattr(user, field, value)
            user.updated_at = datetime.now(UTC)
        return user

    async def consume_active_token(
        self, token_hash: str, *, now: datetime
    ) -> User | None:
        async with self._lock:
            for user in self._users.values():
                if (
                    user.magic_link_token == token_hash
                    and not user.magic_link_used
                    and user.magic_link_expires is not None
                    and user.magic_link_expires > now
                ):
                    user.verified = True
                    user.magic_link_token = None
                    user.magic_link_expires = None
                    user.magic_link_used = True
                    user.updated_at = now
                    return user
        return None

    async def clear_expired_tokens(self, *, now: datetime) -> int:
        cleared = 0
        async with self._lock:
            for user in self._users.values():
                if (
                    user.magic_link_token is not None
                    and user.magic_link_expires is not None
                    and user.magic_link_expires < now
                ):
                    user.magic_link_token = None
                    user.magic_link_expires = None
                    user.magic_link_used = False
                    cleared += 1
        return cleared
