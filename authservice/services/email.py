"""Outbound email dispatch."""

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage as MIMEEmail
from typing import Protocol

from authservice.config import Settings
from authservice.errors import DeliveryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    """A plain text email."""

    to: str
    subject: str
    body: str


class EmailSender(Protocol):
    """Anything that can deliver an ``EmailMessage`` or raise ``DeliveryError``."""

    def send(self, message: EmailMessage) -> None: ...


class SMTPEmailSender:
    """Sends email through an authenticated SMTP server with STARTTLS."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _start_session(self, conn: smtplib.SMTP) -> None:
        """Upgrade to TLS, logging in when credentials are configured."""
        conn.ehlo()
        conn.starttls()
        conn.ehlo()
        if self.settings.smtp_user and self.settings.smtp_password:
            conn.login(self.settings.smtp_user, self.settings.smtp_password)

    def send(self, message: EmailMessage) -> None:
        """Deliver the message.

        Raises:
            DeliveryError: the SMTP conversation failed.
        """
        msg = MIMEEmail()
        msg["Subject"] = message.subject
        msg["From"] = self.settings.email_from
        msg["To"] = message.to
        msg.set_content(message.body)

        try:
            # The connection is closed on the way out, even if the handshake fails
            with smtplib.SMTP(
                self.settings.smtp_host, self.settings.smtp_port, timeout=15
            ) as conn:
                self._start_session(conn)
                conn.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"[Email] Failed to send '{message.subject}' to {message.to}: {e}")
            raise DeliveryError() from e

        logger.info(f"[Email] Sent '{message.subject}' to {message.to}")


class LoggingEmailSender:
    """Development sender: writes the email to the log instead of delivering it."""

    def send(self, message: EmailMessage) -> None:
        """Log the message, body included."""
        logger.info(f"[Email] To: {message.to} | Subject: {message.subject}\n{message.body}")


def build_email_sender(settings: Settings) -> EmailSender:
    """Pick the sender for the configured environment."""
    if settings.smtp_host:
        return SMTPEmailSender(settings)
    if settings.is_production:
        logger.warning("SMTP_HOST not configured in production, emails will only be logged")
    else:
        logger.info("SMTP not configured, emails will be logged")
    return LoggingEmailSender()


def otp_email(to: str, code: str, ttl_minutes: int, name: str | None = None) -> EmailMessage:
    """Build the email carrying a verification code."""
    greeting = f"Hi {name}," if name else "Hello,"
    body = (
        f"{greeting}\n\n"
        f"Your verification code is: {code}\n\n"
        f"It expires in {ttl_minutes} minutes. "
        "If you did not request this code, you can ignore this email.\n"
    )
    subject = f"Your verification code (valid for {ttl_minutes} min)"
    return EmailMessage(to=to, subject=subject, body=body)
