"""Tests for reset link delivery."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

from truedope.config.settings import settings
from truedope.features.auth.notifications import EmailNotifier, LogNotifier, build_reset_message

EXPIRES = datetime(2026, 3, 1, 18, 30, tzinfo=UTC)


class TestResetEmail:
    def test_message_contents(self):
        message = build_reset_message("noreply@truedope.io", "a@example.com", "http://x/reset?token=abc", EXPIRES)

        assert message["To"] == "a@example.com"
        assert message["From"] == "noreply@truedope.io"
        body = message.get_content()
        assert "http://x/reset?token=abc" in body
        assert "2026-03-01 18:30" in body

    async def test_email_notifier_uses_smtp_settings(self):
        config = settings.model_copy(update={"smtp_host": "smtp.example.com", "smtp_port": 2525})

        with patch("truedope.features.auth.notifications.aiosmtplib.send", new_callable=AsyncMock) as send:
            await EmailNotifier(config).send_password_reset("a@example.com", "http://x", EXPIRES)

        send.assert_awaited_once()
        kwargs = send.await_args.kwargs
        assert kwargs["hostname"] == "smtp.example.com"
        assert kwargs["port"] == 2525
        assert send.await_args.args[0]["To"] == "a@example.com"

    async def test_log_notifier_does_not_raise(self):
        await LogNotifier().send_password_reset("a@example.com", "http://x", EXPIRES)

