"""Delivery of password reset links."""

import logging
from datetime import datetime
from email.message import EmailMessage
from functools import lru_cache
from typing import Protocol

import aiosmtplib

from truedope.config.logging_config import redact_email
from truedope.config.settings import Settings, settings

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send_password_reset(self, email: str, reset_url: str, expires_at: datetime) -> None: ...


def build_reset_message(sender: str, email: str, reset_url: str, expires_at: datetime) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = email
    message["Subject"] = "Reset your TrueDope password"
    message.set_content(
        "We received a request to reset your TrueDope password.\n\n"
        f"Open the link below to choose a new password:\n{reset_url}\n\n"
        f"The link expires at {expires_at:%Y-%m-%d %H:%M} UTC and can only be used once.\n"
        "If you did not request this, you can ignore this email."
    )
    return message


class EmailNotifier:
    """Send reset emails over SMTP."""

    def __init__(self, config: Settings):
        self.config = config

    async def send_password_reset(self, email: str, reset_url: str, expires_at: datetime) -> None:
        message = build_reset_message(self.config.email_from, email, reset_url, expires_at)
        await aiosmtplib.send(
            message,
            hostname=self.config.smtp_host,
            port=self.config.smtp_port,
            username=self.config.smtp_user,
            password=self.config.smtp_password,
            start_tls=self.config.smtp_use_tls,
            timeout=self.config.smtp_timeout_seconds,
        )
        logger.info(f"Password reset email sent to {redact_email(email)}")


class LogNotifier:
    """Development fallback used when SMTP is not configured."""

    async def send_password_reset(self, email: str, reset_url: str, expires_at: datetime) -> None:
        logger.info(f"SMTP not configured; password reset link for {redact_email(email)}: {reset_url}")


@lru_cache
def get_notifier() -> Notifier:
    """FastAPI dependency returning the configured notifier."""
    if settings.smtp_host:
        return EmailNotifier(settings)
    return LogNotifier()
