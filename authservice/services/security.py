"""Credential hashing for passwords and one-time passcodes."""

import hashlib
import hmac

from passlib.context import CryptContext

from authservice.config import Settings


class CredentialHasher:
    """One-way hashing of user secrets.

    Passwords use bcrypt over a SHA-256 pre-hash, so every byte of a long
    password counts (plain bcrypt stops at 72). OTP codes use HMAC-SHA256
    keyed with the server-side OTP secret: deterministic, so a submitted
    code can be looked up by its digest.
    """

    def __init__(self, settings: Settings):
        self._pwd_context = CryptContext(
            schemes=["bcrypt_sha256"],
            deprecated="auto",
            bcrypt_sha256__rounds=settings.bcrypt_rounds,
        )
        self._otp_key = settings.otp_secret.encode("utf-8")

    def hash_password(self, password: str) -> str:
        """Hash a password."""
        return self._pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str | None) -> bool:
        """Verify a password against its hash. Malformed hashes never verify."""
        if not plain_password or not hashed_password:
            return False
        try:
            return self._pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            return False

    def hash_otp(self, code: str) -> str:
        """Keyed digest of an OTP code, hex encoded."""
        return hmac.new(self._otp_key, code.encode("utf-8"), hashlib.sha256).hexdigest()
