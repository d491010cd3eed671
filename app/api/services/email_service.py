"""Invite and report email content."""

from html import escape
from typing import Any

from app.api.services.risk import get_risk_level
from app.core.notifications import Email, EmailAttachment

RISK_LEVEL_COLORS = {"Low": "#10b981", "Medium": "#f59e0b", "High": "#ef4444"}

RISK_CATEGORIES = [
    ("Identity Risk", "identity_risk_score"),
    ("Training Risk", "training_risk_score"),
    ("Device Risk", "device_risk_score"),
    ("Cloud Risk", "cloud_risk_score"),
    ("Threat Risk", "threat_risk_score"),
]


def _layout(heading: str, subheading: str, body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<div style="padding: 20px; background-color: #f8fafc; border-bottom: 3px solid #3b82f6;">'
        f'<h1 style="color: #1e293b; margin: 0;">{escape(heading)}</h1>'
        f'<p style="color: #64748b; margin: 5px 0 0 0;">{escape(subheading)}</p>'
        "</div>"
        f'<div style="padding: 20px; background-color: white;">{body}</div>'
        '<div style="padding: 15px; background-color: #f8fafc; text-align: center; '
        'font-size: 12px; color: #64748b;">'
        "<p>This is an automated message. Please do not reply directly to this email.</p>"
        "</div></div>"
    )


def invite_email(invite: Any, tenant_name: str, accept_url: str, expiry_days: int) -> Email:
    greeting = escape(invite.first_name or "")
    body = (
        f"<p>Hello {greeting},</p>"
        f"<p>You have been invited to view the cyber risk dashboard for "
        f"<strong>{escape(tenant_name)}</strong> as {escape(invite.role)}.</p>"
        f'<p><a href="{escape(accept_url)}" style="display: inline-block; padding: 10px 18px; '
        f'background-color: #3b82f6; color: white; text-decoration: none; border-radius: 4px;">'
        f"Accept invitation</a></p>"
        f"<p>The link expires in {expiry_days} days.</p>"
    )
    return Email(
        to=invite.email,
        subject=f"You're invited to the {tenant_name} cyber risk dashboard",
        html=_layout("Cyber Risk Dashboard", tenant_name, body),
    )


def report_email(report: Any, recipient: Any, tenant_name: str, pdf: bytes, filename: str) -> Email:
    """Risk summary email with the report PDF attached."""
    level = get_risk_level(report.overall_risk_score)
    period = f"{report.month or f'Q{report.quarter}'} {report.year}"

    categories = "".join(
        f"<li>{label}: {getattr(report, attr)}%</li>" for label, attr in RISK_CATEGORIES
    )
    body = (
        f"<p>Hello {escape(recipient.name or '')},</p>"
        "<p>Attached is your latest cyber risk report. Here's a summary of the findings:</p>"
        '<div style="margin: 20px 0; padding: 15px; background-color: #f1f5f9; border-radius: 5px;">'
        '<p style="margin: 0 0 10px 0; font-weight: bold;">Overall Risk Level: '
        f'<span style="color: {RISK_LEVEL_COLORS[level]};">{level} ({report.overall_risk_score}%)</span></p>'
        f'<ul style="margin: 0; padding-left: 20px;">{categories}</ul>'
        "</div>"
        "<p>Please review the attached PDF for detailed findings and recommendations.</p>"
        "<p>If you have any questions, contact your account manager.</p>"
    )
    return Email(
        to=recipient.email,
        subject=f"Cyber Risk Report - {tenant_name} - {period}",
        html=_layout("Cyber Risk Report", f"{tenant_name} - {period}", body),
        attachments=[EmailAttachment(filename=filename, content=pdf)],
    )
