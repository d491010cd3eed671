"""Tests for outbound email."""

import smtplib
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from app.api.services.email_service import invite_email, report_email
from app.core.config import get_settings
from app.core.notifications import (
    Email,
    EmailAttachment,
    build_message,
    create_invite_url,
    sanitize_log_message,
    send_email,
)

EMAIL = Email(
    to="ceo@contoso.com",
    subject="Cyber Risk Report - Contoso - May 2025",
    html="<p>Hello</p>",
    attachments=[EmailAttachment(filename="report.pdf", content=b"%PDF-1.4")],
)


@pytest.fixture
def smtp_configured(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "smtp_host", "smtp.example.com")
    monkeypatch.setattr(settings, "smtp_user", "mailer")
    monkeypatch.setattr(settings, "smtp_password", "hunter2")


@pytest.fixture
def smtp():
    """Patched SMTP class; ``smtp.server`` is the connection used in the with block."""
    with patch("app.core.notifications.smtplib.SMTP") as smtp_cls:
        smtp_cls.server = smtp_cls.return_value.__enter__.return_value
        yield smtp_cls


class TestHelpers:
    def test_invite_url_carries_token(self):
        assert create_invite_url("abc123") == "http://localhost:3000/invite/accept?token=abc123"

    def test_invite_url_encodes_token(self):
        assert create_invite_url("a+b/c") == "http://localhost:3000/invite/accept?token=a%2Bb%2Fc"

    def test_sanitize_redacts_token(self):
        message = "Failed to deliver http://localhost:3000/invite/accept?token=secret123 to bob"
        sanitized = sanitize_log_message(message)
        assert "secret123" not in sanitized
        assert "token=[REDACTED]" in sanitized

    def test_sanitize_leaves_plain_messages(self):
        assert sanitize_log_message("Email sent") == "Email sent"
        assert sanitize_log_message("") == ""

    def test_build_message_attaches_pdf(self):
        message = build_message(EMAIL, "reports@cyberrisk.example.com", "Cyber Risk Dashboard")

        assert message["From"] == "Cyber Risk Dashboard <reports@cyberrisk.example.com>"
        assert message["To"] == "ceo@contoso.com"
        assert message["Subject"] == EMAIL.subject
        body, attachment = message.get_payload()
        assert body.get_content_type() == "text/html"
        assert attachment.get_content_type() == "application/pdf"
        assert attachment.get_filename() == "report.pdf"
        assert attachment.get_payload(decode=True) == b"%PDF-1.4"


class TestSendEmail:
    @pytest.mark.asyncio
    async def test_not_configured(self, smtp):
        result = await send_email(EMAIL)

        assert result == {"success": False, "error": "Email delivery not configured"}
        smtp.assert_not_called()

    @pytest.mark.asyncio
    async def test_sent(self, smtp_configured, smtp):
        result = await send_email(EMAIL)

        assert result == {"success": True}
        smtp.assert_called_once_with("smtp.example.com", 587, timeout=30.0)
        smtp.server.starttls.assert_called_once()
        smtp.server.login.assert_called_once_with("mailer", "hunter2")
        sent = smtp.server.send_message.call_args.args[0]
        assert sent["To"] == "ceo@contoso.com"

    @pytest.mark.asyncio
    async def test_implicit_tls(self, smtp_configured, monkeypatch):
        monkeypatch.setattr(get_settings(), "smtp_secure", True)
        monkeypatch.setattr(get_settings(), "smtp_port", 465)
        with patch("app.core.notifications.smtplib.SMTP_SSL") as smtp_ssl:
            result = await send_email(EMAIL)

        assert result["success"] is True
        smtp_ssl.assert_called_once_with("smtp.example.com", 465, timeout=30.0)
        smtp_ssl.return_value.__enter__.return_value.starttls.assert_not_called()

    @pytest.mark.asyncio
    async def test_recipient_refused(self, smtp_configured, smtp):
        smtp.server.send_message.side_effect = smtplib.SMTPRecipientsRefused(
            {"ceo@contoso.com": (550, b"No such user")}
        )
        result = await send_email(EMAIL)

        assert result == {"success": False, "error": "Recipient refused"}

    @pytest.mark.asyncio
    async def test_connection_error_does_not_raise(self, smtp_configured, smtp):
        smtp.side_effect = ConnectionRefusedError("connection refused")
        result = await send_email(EMAIL)

        assert result == {"success": False, "error": "Failed to send email"}


class TestEmailContent:
    def test_invite_email(self):
        invite = SimpleNamespace(email="new@contoso.com", first_name="<Ann>", role="user")
        email = invite_email(invite, "Contoso", "http://localhost:3000/invite/accept?token=t&x=1", 7)

        assert email.to == "new@contoso.com"
        assert email.subject == "You're invited to the Contoso cyber risk dashboard"
        assert 'href="http://localhost:3000/invite/accept?token=t&amp;x=1"' in email.html
        assert "&lt;Ann&gt;" in email.html
        assert "7 days" in email.html

    def test_report_email(self):
        report = SimpleNamespace(
            month=None,
            quarter=3,
            year=2025,
            overall_risk_score=72,
            identity_risk_score=80,
            training_risk_score=10,
            device_risk_score=0,
            cloud_risk_score=50,
            threat_risk_score=25,
        )
        recipient = SimpleNamespace(email="cfo@contoso.com", name="CFO")
        email = report_email(report, recipient, "Contoso", b"%PDF", "Contoso-Risk-Report-Q3-2025.pdf")

        assert email.subject == "Cyber Risk Report - Contoso - Q3 2025"
        assert "High (72%)" in email.html
        assert "<li>Identity Risk: 80%</li>" in email.html
        assert email.attachments[0].filename == "Contoso-Risk-Report-Q3-2025.pdf"
