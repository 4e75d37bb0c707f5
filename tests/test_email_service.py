"""Unit tests for share notification emails."""

import smtplib
from unittest.mock import patch

import pytest

from quizbank.services.email_service import EmailService


def _send_kwargs(**overrides):
    kwargs = {
        "recipient": "student@example.com",
        "sender_name": "Ms. Frizzle",
        "quiz_title": "Algebra I",
        "share_url": "http://localhost:3000/quiz/shared/abc",
        "permission": "edit",
        "message": "",
    }
    kwargs.update(overrides)
    return kwargs


def _smtp_service() -> EmailService:
    return EmailService(
        host="smtp.example.com",
        port=587,
        user="mailer",
        password="secret",
        sender="quizbank@example.com",
        use_tls=True,
    )


class TestBuildShareMessage:
    """Tests for the notification body."""

    def test_headers_and_body(self):
        msg = _smtp_service().build_share_message(**_send_kwargs(message="Due Friday"))
        body = msg.get_payload()

        assert msg["To"] == "student@example.com"
        assert msg["From"] == "quizbank@example.com"
        assert "Algebra I" in msg["Subject"]
        assert "view and edit" in body
        assert "Due Friday" in body
        assert body.endswith("http://localhost:3000/quiz/shared/abc")

    def test_message_section_omitted_when_empty(self):
        body = _smtp_service().build_share_message(**_send_kwargs()).get_payload()

        assert "Message:" not in body


@pytest.mark.asyncio
class TestSendShareNotification:
    """Tests for delivery."""

    async def test_disabled_without_host(self):
        service = EmailService(host="")

        assert service.enabled is False
        with patch("quizbank.services.email_service.smtplib.SMTP") as smtp_cls:
            assert await service.send_share_notification(**_send_kwargs()) is False
        smtp_cls.assert_not_called()

    async def test_sends_over_smtp(self):
        with patch("quizbank.services.email_service.smtplib.SMTP") as smtp_cls:
            sent = await _smtp_service().send_share_notification(**_send_kwargs())

        assert sent is True
        smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=10)
        server = smtp_cls.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("mailer", "secret")
        args = server.sendmail.call_args.args
        assert args[0] == "quizbank@example.com"
        assert args[1] == ["student@example.com"]

    @pytest.mark.parametrize("error", [smtplib.SMTPException("rejected"), OSError("connection refused")])
    async def test_failure_reported_as_false(self, error):
        with patch("quizbank.services.email_service.smtplib.SMTP", side_effect=error):
            sent = await _smtp_service().send_share_notification(**_send_kwargs())

        assert sent is False
