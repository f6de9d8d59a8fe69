"""User model."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String

from authservice.database import Base
from authservice.models.mixins import TimestampMixin


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends without tz support (SQLite)."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class User(Base, TimestampMixin):
    """User record holding identity and credential state.

    Internal only: anything returned to a client goes through
    ``authservice.schemas.auth.UserResponse``.
    """

    __tablename__ = "users"
    __table_args__ = (
        # otp_hash and otp_expires_at are set and cleared together
        CheckConstraint(
            "(otp_hash IS NULL) = (otp_expires_at IS NULL)",
            name="ck_users_otp_pair",
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)
    otp_hash = Column(String(64), nullable=True, index=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True)
    active = Column(Boolean, nullable=False, default=False)
    password_changed_at = Column(DateTime(timezone=True), nullable=True)

    def set_otp(self, otp_hash: str, expires_at: datetime) -> None:
        """Store the digest of the outstanding OTP, replacing any previous one."""
        self.otp_hash = otp_hash
        self.otp_expires_at = expires_at

    def clear_otp(self) -> None:
        """Forget the outstanding OTP."""
        self.otp_hash = None
        self.otp_expires_at = None

    def changed_password_after(self, timestamp: float) -> bool:
        """Check whether the password was changed after the given UNIX timestamp."""
        changed_at = as_utc(self.password_changed_at)
        if changed_at is None:
            return False
        return changed_at.timestamp() > timestamp

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, email={self.email!r}, active={self.active})>"
