"""Shared dependencies for API endpoints.

Builds the MagicLinkService graph per request: a SqlUserRepository bound
to the request's session, the configured notifier, and the session issuer.
Tests override get_db / get_notifier / get_session_issuer through
app.dependency_overrides.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import SessionIssuer, get_session_issuer
from app.core.config import settings
from app.core.database import get_db
from app.core.email import Notifier, get_notifier
from app.models import User
from app.repositories.base import UserRepository
from app.repositories.user_repository import SqlUserRepository
from app.services.magic_link_service import MagicLinkService

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_user_repository(db: DbSession) -> UserRepository:
    """Repository bound to the request-scoped session."""
    return SqlUserRepository(db)


# Reusable type aliases for dependency injection
Repository = Annotated[UserRepository, Depends(get_user_repository)]
LinkNotifier = Annotated[Notifier, Depends(get_notifier)]
Issuer = Annotated[SessionIssuer, Depends(get_session_issuer)]


def get_magic_link_service(
    repository: Repository,
    notifier: LinkNotifier,
    session_issuer: Issuer,
) -> MagicLinkService:
    """Assemble the magic link service from request-scoped collaborators."""
    return MagicLinkService(
        repository,
        notifier,
        session_issuer,
        link_base_url=settings.magic_link_base_url,
        token_ttl=settings.magic_link_ttl,
    )


AuthService = Annotated[MagicLinkService, Depends(get_magic_link_service)]


async def get_current_user(request: Request, service: AuthService) -> User:
    """Resolve the session cookie to the current user.

    Raises:
        UnauthorizedError: Missing/invalid cookie or the user no longer exists.
    """
    credential = request.cookies.get(settings.auth_cookie_name)
    return await service.current_user(credential)


CurrentUser = Annotated[User, Depends(get_current_user)]
