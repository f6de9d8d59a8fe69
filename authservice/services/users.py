"""User repository backed by a SQLAlchemy session."""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from authservice.errors import DuplicateEmail
from authservice.models.user import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookup."""
    return email.strip().lower()


class UserRepository:
    """Keyed store of user records.

    Each method touches a single row, so the database's per-row atomicity
    and the unique email index are the only synchronization needed.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, email: str, password_hash: str, name: str | None = None) -> User:
        """Insert a new inactive user.

        Raises:
            DuplicateEmail: a user with the same normalized email exists.
        """
        normalized = normalize_email(email)
        if self.find_by_email(normalized) is not None:
            raise DuplicateEmail()

        user = User(email=normalized, password_hash=password_hash, name=name, active=False)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent signup for the same address
            self.db.rollback()
            raise DuplicateEmail() from e
        self.db.refresh(user)
        return user

    def find_by_email(self, email: str) -> User | None:
        """Get a user by email."""
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_id(self, user_id: str) -> User | None:
        """Get a user by ID."""
        return self.db.query(User).filter(User.id == user_id).first()

    def find_by_otp_hash(
        self, otp_hash: str, now: datetime, email: str | None = None
    ) -> User | None:
        """Find the user whose outstanding OTP has this digest and has not expired."""
        query = self.db.query(User).filter(
            User.otp_hash == otp_hash,
            User.otp_expires_at.is_not(None),
            User.otp_expires_at > now,
        )
        if email is not None:
            query = query.filter(User.email == normalize_email(email))
        return query.first()

    def save(self, user: User) -> User:
        """Persist in-place changes to an existing user."""
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete(self, user: User) -> None:
        """Remove a user. Only used to undo a signup whose email never went out."""
        self.db.delete(user)
        self.db.commit()
        logger.info(f"Deleted user {user.id}")
