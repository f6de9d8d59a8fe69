"""Signed session tokens (JWT)."""

import logging
from dataclasses import dataclass
from datetime import timedelta

from jose import ExpiredSignatureError, JWTError, jwt

from authservice.config import Settings
from authservice.errors import ExpiredToken, InvalidToken
from authservice.services.clock import Clock, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a session token."""

    subject: str
    issued_at: float


class TokenIssuer:
    """Mints and verifies bearer tokens bound to a user id."""

    def __init__(self, settings: Settings, clock: Clock = utcnow):
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.ttl = timedelta(minutes=settings.jwt_expiration_minutes)
        self.clock = clock

    def issue(self, user_id: str) -> str:
        """Create a signed token for the user.

        ``iat`` keeps sub-second precision so a token minted right after a
        password change is not mistaken for one minted before it.
        """
        now = self.clock()
        to_encode = {
            "sub": str(user_id),
            "iat": now.timestamp(),
            "exp": now + self.ttl,
        }
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Check signature and expiry, then return the claims.

        Raises:
            ExpiredToken: the signature is valid but ``exp`` has passed.
            InvalidToken: anything else is wrong with the token.
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise ExpiredToken() from e
        except JWTError as e:
            logger.warning(f"JWT decode error: {e}")
            raise InvalidToken() from e

        subject = payload.get("sub")
        issued_at = payload.get("iat")
        if not subject or not isinstance(issued_at, int | float):
            raise InvalidToken()
        return TokenClaims(subject=subject, issued_at=float(issued_at))
