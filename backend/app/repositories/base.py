"""User repository contract.

MagicLinkService depends on this Protocol only, so the SQLAlchemy
repository and the in-memory repository are interchangeable.

Contract for consume_active_token(): it is the single atomic step of
verification. Match digest AND unused AND unexpired, then mark verified,
clear the digest and expiry and set magic_link_used, all in one write.
Two concurrent callers presenting the same token must not both get a user.
"""

import uuid
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Protocol

from app.models.user import User


class RepositoryError(Exception):
    """Storage backend failure (connection loss, constraint violation, timeout).

    Raised instead of driver-specific exceptions so callers can tell a
    dependency failure apart from a business-rule outcome.
    """


class UserRepository(Protocol):
    """Async persistence operations the auth core needs."""

    async def get_by_email(self, email: str) -> User | None: ...

    async def get_by_id(self, user_id: uuid.UUID) -> User | None: ...

    async def create(self, *, email: str, name: str | None = None) -> User: ...

    async def update(
        self,
        user_id: uuid.UUID,
        **fields: str | datetime | bool | None,
    ) -> User | None: ...

    async def consume_active_token(
        self, token_hash: str, *, now: datetime
    ) -> User | None: ...

    async def clear_expired_tokens(self, *, now: datetime) -> int: ...


# Opens a repository for one unit of work (one reaper sweep).
RepositoryScope = Callable[[], AbstractAsyncContextManager[UserRepository]]
