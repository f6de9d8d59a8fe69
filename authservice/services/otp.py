"""One-time passcode generation."""

import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta

from authservice.config import Settings
from authservice.services.clock import Clock, utcnow

OTP_LENGTH = 6


@dataclass(frozen=True)
class GeneratedOTP:
    """A freshly generated code and the moment it stops being valid."""

    code: str
    expires_at: datetime


class OTPGenerator:
    """Produces fixed-length numeric codes from a CSPRNG."""

    def __init__(self, settings: Settings, clock: Clock = utcnow):
        self.length = OTP_LENGTH
        self.ttl = timedelta(minutes=settings.otp_expiration_minutes)
        self.clock = clock

    def generate(self) -> GeneratedOTP:
        """Return a random code (leading zeros kept) and its expiry."""
        code = "".join(secrets.choice(string.digits) for _ in range(self.length))
        return GeneratedOTP(code=code, expires_at=self.clock() + self.ttl)
