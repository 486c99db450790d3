"""
notify/mailer.py -- OTP email delivery over SMTP via fastapi-mail.

The Mailer is the notification sender used by auth/verification.py. It is
built once in the api/main.py lifespan and injected into VerificationService.

SEND_EMAILS=false turns on fastapi-mail's SUPPRESS_SEND: messages are built
and rendered but never handed to the SMTP server. Useful for local dev
without SMTP credentials.

Any transport or rendering failure is logged and re-raised as DeliveryError. The code is
already stored by the time the mailer runs, so a failed send never changes
account state.

Security: OTP values go into the message body only; they are never logged.
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiosmtplib
from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from fastapi_mail.connection import Connection
from fastapi_mail.errors import ConnectionErrors
from jinja2 import TemplateError

from core.config import Settings
from core.errors import DeliveryError

logger = logging.getLogger("authflow.mail")

TEMPLATE_DIR = Path(__file__).parent / "templates"


def _describe_ttl(seconds: int) -> str:
    """Human wording for a code lifetime, e.g. 86400 -> "24 hours"."""
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return f"{hours} hour{'s' if hours != 1 else ''}"
    minutes = max(seconds // 60, 1)
    return f"{minutes} minute{'s' if minutes != 1 else ''}"


class Mailer:
    """Render and send the verification and password-reset OTP emails."""

    def __init__(self, settings: Settings) -> None:
        self._suppressed = not settings.send_emails
        self._verify_ttl = _describe_ttl(settings.verify_otp_ttl_seconds)
        self._reset_ttl = _describe_ttl(settings.reset_otp_ttl_seconds)
        self._config = ConnectionConfig(
            MAIL_USERNAME=settings.smtp_user,
            MAIL_PASSWORD=settings.smtp_pass,
            MAIL_FROM=settings.sender_email,
            MAIL_FROM_NAME=settings.sender_name,
            MAIL_SERVER=settings.smtp_host,
            MAIL_PORT=settings.smtp_port,
            MAIL_STARTTLS=settings.smtp_port == 587,
            MAIL_SSL_TLS=settings.smtp_port == 465,
            USE_CREDENTIALS=bool(settings.smtp_user),
            VALIDATE_CERTS=True,
            SUPPRESS_SEND=1 if self._suppressed else 0,
            TEMPLATE_FOLDER=TEMPLATE_DIR,
        )
        self._fast_mail = FastMail(self._config)

    async def send_verify_otp(self, email: str, code: str) -> None:
        await self._send(
            email,
            subject="Account Verification OTP",
            template_name="verify_otp.html",
            body={"email": email, "otp": code, "ttl": self._verify_ttl},
        )

    async def send_reset_otp(self, email: str, code: str) -> None:
        await self._send(
            email,
            subject="Password Reset OTP",
            template_name="reset_otp.html",
            body={"email": email, "otp": code, "ttl": self._reset_ttl},
        )

    async def _send(self, email: str, subject: str, template_name: str, body: dict) -> None:
        message = MessageSchema(
            subject=subject,
            recipients=[email],
            template_body=body,
            subtype=MessageType.html,
        )
        try:
            await self._fast_mail.send_message(message, template_name=template_name)
        except (ConnectionErrors, aiosmtplib.SMTPException, TemplateError) as exc:
            # ConnectionErrors covers connect/login; the SMTP transaction itself
            # raises aiosmtplib errors (refused recipients, dropped connection).
            logger.error("Failed to send %r to %s: %s", subject, email, exc)
            raise DeliveryError("Failed to send email. Please try again.") from exc

        if self._suppressed:
            logger.info("SEND_EMAILS is off; %r to %s was not delivered", subject, email)
        else:
            logger.info("Sent %r to %s", subject, email)

    async def check_connection(self) -> bool:
        """Connect and log in to the SMTP server, then quit.

        Used once at startup when delivery is on. Returns False instead of
        raising so an unreachable mail server does not stop the API.
        """
        if self._suppressed:
            return True
        try:
            async with Connection(self._config):
                pass
        except (ConnectionErrors, aiosmtplib.SMTPException) as exc:
            logger.warning("SMTP server %s:%d not reachable: %s", self._config.MAIL_SERVER, self._config.MAIL_PORT, exc)
            return False
        return True
