"""SQLAlchemy models."""

from authservice.models.user import User

__all__ = [
    "User",
]
