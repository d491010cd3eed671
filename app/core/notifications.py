"""Outbound email for invites and report delivery.

Mail goes out over SMTP. Without ``SMTP_HOST`` nothing is sent and callers
get an unsuccessful result back, so local setups never reach the network.

SECURITY: invite links carry a bearer token and are redacted from logs.
"""

import asyncio
import logging
import re
import smtplib
from dataclasses import dataclass, field
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Any
from urllib.parse import urlencode

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"(token=)[^&\s\"']+", re.IGNORECASE)


@dataclass
class EmailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


@dataclass
class Email:
    """A single-recipient HTML email."""

    to: str
    subject: str
    html: str
    attachments: list[EmailAttachment] = field(default_factory=list)


def sanitize_log_message(message: str) -> str:
    """Redact invite tokens from a message before it is logged."""
    if not message:
        return message
    return TOKEN_PATTERN.sub(r"\1[REDACTED]", message)


def create_invite_url(token: str) -> str:
    """Link to the front end page that accepts an invite."""
    base_url = get_settings().app_base_url.rstrip("/")
    return f"{base_url}/invite/accept?{urlencode({'token': token})}"


def build_message(email: Email, sender: str, sender_name: str) -> MIMEMultipart:
    message = MIMEMultipart()
    message["From"] = formataddr((sender_name, sender))
    message["To"] = email.to
    message["Subject"] = email.subject
    message.attach(MIMEText(email.html, "html", "utf-8"))

    for item in email.attachments:
        part = MIMEApplication(item.content, _subtype=item.content_type.split("/")[-1])
        part.add_header("Content-Disposition", "attachment", filename=item.filename)
        message.attach(part)
    return message


def _deliver(settings: Settings, message: MIMEMultipart) -> None:
    smtp_class = smtplib.SMTP_SSL if settings.smtp_secure else smtplib.SMTP
    with smtp_class(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds) as server:
        if not settings.smtp_secure:
            server.starttls()
        if settings.smtp_user:
            server.login(settings.smtp_user, settings.smtp_password or "")
        server.send_message(message)


async def send_email(email: Email) -> dict[str, Any]:
    """Send an email through the configured SMTP server.

    Delivery problems never raise; they are logged and reported in the
    result so one bad address cannot abort a batch.

    Returns:
        Dict with ``success`` and ``error`` when it failed
    """
    settings = get_settings()

    if not settings.smtp_host:
        logger.warning(f"SMTP_HOST not configured; email '{email.subject}' to {email.to} not sent")
        return {"success": False, "error": "Email delivery not configured"}

    message = build_message(email, settings.email_from, settings.app_name)

    try:
        # smtplib blocks
        await asyncio.to_thread(_deliver, settings, message)
    except smtplib.SMTPRecipientsRefused:
        logger.error(f"SMTP server refused recipient {email.to}")
        return {"success": False, "error": "Recipient refused"}
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {email.to}: {sanitize_log_message(str(e))}")
        return {"success": False, "error": "Failed to send email"}

    logger.info(f"Email sent to {email.to}: {email.subject}")
    return {"success": True}
