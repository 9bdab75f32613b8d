"""SQLAlchemy ORM models for the passwordless auth service.

All models are exported from this module for convenient imports:
    from app.models import Base, User

- base.py: Base declarative class, TimestampMixin
- user.py: User (identity + embedded magic link token state)
"""

from app.models.base import Base, TimestampMixin
from app.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
]
