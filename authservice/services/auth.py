"""Authentication service: signup, OTP verification, login and request authorization."""

import logging
import re
from dataclasses import dataclass

from email_validator import EmailNotValidError, validate_email

from authservice.config import Settings
from authservice.errors import (
    DeliveryError,
    InvalidCredentials,
    InvalidOrExpiredOTP,
    MissingFields,
    StaleCredentials,
    Unauthenticated,
    UserNotFound,
    ValidationError,
)
from authservice.models.user import User
from authservice.services.clock import Clock, utcnow
from authservice.services.email import EmailSender, otp_email
from authservice.services.otp import OTP_LENGTH, OTPGenerator
from authservice.services.security import CredentialHasher
from authservice.services.tokens import TokenIssuer
from authservice.services.users import UserRepository, normalize_email

logger = logging.getLogger(__name__)

PASSWORD_RULES = [
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"\d"), "a digit"),
    (re.compile(r"[^A-Za-z0-9]"), "a symbol"),
]


@dataclass(frozen=True)
class VerifiedSession:
    """An authenticated user together with a freshly issued session token."""

    user: User
    token: str


class AuthService:
    """Orchestrates the account lifecycle.

    Unregistered -> PendingVerification (signup) -> Active (first verify).
    Login never hands out a token: it re-issues an OTP, and ``verify`` is the
    step that exchanges a valid code for a session token.
    """

    def __init__(
        self,
        repo: UserRepository,
        settings: Settings,
        email_sender: EmailSender,
        hasher: CredentialHasher | None = None,
        otp_generator: OTPGenerator | None = None,
        token_issuer: TokenIssuer | None = None,
        clock: Clock = utcnow,
    ):
        self.repo = repo
        self.settings = settings
        self.email_sender = email_sender
        self.hasher = hasher or CredentialHasher(settings)
        self.otp_generator = otp_generator or OTPGenerator(settings, clock)
        self.token_issuer = token_issuer or TokenIssuer(settings, clock)
        self.clock = clock

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_email(self, email: str) -> str:
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError("Please provide a valid email", details={"email": str(e)}) from e
        return normalize_email(email)

    def _validate_new_password(self, password: str, password_confirm: str) -> None:
        if password != password_confirm:
            raise ValidationError("Passwords are not the same")

        problems = []
        if len(password) < self.settings.password_min_length:
            problems.append(f"at least {self.settings.password_min_length} characters")
        problems.extend(label for pattern, label in PASSWORD_RULES if not pattern.search(password))
        if problems:
            raise ValidationError(
                "Password does not meet strength requirements",
                details={"password": f"Password must contain {', '.join(problems)}"},
            )

    # ------------------------------------------------------------------
    # OTP issuance
    # ------------------------------------------------------------------

    def _issue_otp(self, user: User) -> None:
        """Generate a code, store its digest on the user, and email it."""
        otp = self.otp_generator.generate()
        user.set_otp(self.hasher.hash_otp(otp.code), otp.expires_at)
        self.repo.save(user)

        message = otp_email(
            user.email, otp.code, self.settings.otp_expiration_minutes, name=user.name
        )
        self.email_sender.send(message)
        logger.info(f"Issued OTP for user {user.id}, expires at {otp.expires_at.isoformat()}")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def signup(
        self,
        email: str,
        password: str,
        password_confirm: str,
        name: str | None = None,
    ) -> User:
        """Register a pending user and email them a verification code."""
        if not email or not email.strip() or not password:
            raise MissingFields()

        normalized = self._validate_email(email.strip())
        self._validate_new_password(password, password_confirm)

        password_hash = self.hasher.hash_password(password)
        user = self.repo.create(normalized, password_hash, name=name)
        logger.info(f"Signed up user {user.id}")

        try:
            self._issue_otp(user)
        except DeliveryError:
            # Without the code the account can never be activated; free the address
            self.repo.delete(user)
            raise
        return user

    def login(self, email: str, password: str) -> User:
        """Check credentials and email a fresh OTP. Does not issue a session token."""
        if not email or not email.strip() or not password:
            raise MissingFields()

        user = self.repo.find_by_email(email)
        if user is None or not self.hasher.verify_password(password, user.password_hash):
            logger.warning("Rejected login with invalid credentials")
            raise InvalidCredentials()

        try:
            self._issue_otp(user)
        except DeliveryError:
            user.clear_otp()
            self.repo.save(user)
            raise
        return user

    def verify(self, email: str, submitted_code: str) -> VerifiedSession:
        """Exchange a valid, unexpired OTP for a session token and activate the user."""
        code = (submitted_code or "").strip()
        if not email or len(code) != OTP_LENGTH or not (code.isascii() and code.isdigit()):
            raise InvalidOrExpiredOTP()

        user = self.repo.find_by_otp_hash(self.hasher.hash_otp(code), self.clock(), email=email)
        if user is None:
            logger.warning("Rejected OTP verification")
            raise InvalidOrExpiredOTP()

        user.clear_otp()
        user.active = True
        self.repo.save(user)
        logger.info(f"Verified user {user.id}")

        return VerifiedSession(user=user, token=self.token_issuer.issue(user.id))

    def protect(self, token: str | None) -> User:
        """Resolve a bearer token to its (active) user."""
        if not token:
            raise Unauthenticated()

        claims = self.token_issuer.verify(token)

        user = self.repo.find_by_id(claims.subject)
        if user is None:
            raise UserNotFound()
        if not user.active:
            raise Unauthenticated("Account is not verified. Please verify your email")
        if user.changed_password_after(claims.issued_at):
            raise StaleCredentials()
        return user

    def change_password(
        self,
        user: User,
        current_password: str,
        password: str,
        password_confirm: str,
    ) -> VerifiedSession:
        """Replace the user's password and return a new token. Older tokens become stale."""
        if not self.hasher.verify_password(current_password, user.password_hash):
            raise InvalidCredentials("Your current password is wrong")

        self._validate_new_password(password, password_confirm)

        user.password_hash = self.hasher.hash_password(password)
        user.password_changed_at = self.clock()
        self.repo.save(user)
        logger.info(f"Changed password for user {user.id}")

        return VerifiedSession(user=user, token=self.token_issuer.issue(user.id))
