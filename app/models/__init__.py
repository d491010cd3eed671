"""Database models module."""

from app.models.audit import AuditLog
from app.models.recommendation import (
    GlobalRecommendation,
    Recommendation,
    TenantWidgetRecommendation,
)
from app.models.report import Report, ReportRecipient
from app.models.score import SecureScoreHistory, TenantScore
from app.models.tenant import Microsoft365Connection, Tenant, UserTenant
from app.models.user import AppUser, Invite
from app.models.widget import TenantWidget, Widget

__all__ = [
    "Tenant",
    "UserTenant",
    "Microsoft365Connection",
    "AppUser",
    "Invite",
    # Widgets & scores
    "Widget",
    "TenantWidget",
    "TenantScore",
    "SecureScoreHistory",
    # Reports
    "Report",
    "ReportRecipient",
    # Recommendation models
    "Recommendation",
    "GlobalRecommendation",
    "TenantWidgetRecommendation",
    "AuditLog",
]
