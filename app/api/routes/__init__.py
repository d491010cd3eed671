"""API routes module."""

from app.api.routes.audit import router as audit_router
from app.api.routes.invites import router as invites_router
from app.api.routes.microsoft import router as microsoft_router
from app.api.routes.recommendations import router as recommendations_router
from app.api.routes.reports import router as reports_router
from app.api.routes.scores import cron_router as scores_cron_router
from app.api.routes.scores import router as scores_router
from app.api.routes.tenants import router as tenants_router
from app.api.routes.users import router as users_router
from app.api.routes.widgets import router as widgets_router

__all__ = [
    "tenants_router",
    "users_router",
    "invites_router",
    "widgets_router",
    "scores_router",
    "scores_cron_router",
    "microsoft_router",
    "reports_router",
    "recommendations_router",
    "audit_router",
]
