"""Pydantic schemas for API request/response validation."""

from app.schemas.audit import AuditLogEntry, AuditLogPage
from app.schemas.recommendation import (
    GlobalRecommendationCreate,
    GlobalRecommendationResponse,
    GlobalRecommendationUpdate,
    RecommendationCategory,
    RecommendationCreate,
    RecommendationResponse,
    RecommendationStatus,
    RecommendationUpdate,
    WidgetRecommendationCreate,
    WidgetRecommendationResponse,
)
from app.schemas.report import (
    AnalystNotesUpdate,
    RecipientCreate,
    RecipientResponse,
    ReportCreate,
    ReportResponse,
    ReportStatusUpdate,
    ReportUpdate,
)
from app.schemas.tenant import (
    ConnectionCreate,
    ConnectionResponse,
    TenantCreate,
    TenantResponse,
    TenantUpdate,
    TenantUserAdd,
    TenantUserResponse,
)
from app.schemas.user import (
    InviteAccept,
    InviteCreate,
    InviteCreatedResponse,
    InviteResponse,
    UserCreate,
    UserResponse,
    UserRoleUpdate,
    UserTenantsUpdate,
)
from app.schemas.widget import CustomValueResponse, CustomValueUpdate, ScoreRunResponse

__all__ = [
    # Tenant
    "TenantCreate",
    "TenantUpdate",
    "TenantResponse",
    "TenantUserAdd",
    "TenantUserResponse",
    "ConnectionCreate",
    "ConnectionResponse",
    # Users & invites
    "UserCreate",
    "UserResponse",
    "UserRoleUpdate",
    "UserTenantsUpdate",
    "InviteCreate",
    "InviteCreatedResponse",
    "InviteResponse",
    "InviteAccept",
    # Widgets & scores
    "CustomValueUpdate",
    "CustomValueResponse",
    "ScoreRunResponse",
    # Reports
    "ReportCreate",
    "ReportUpdate",
    "ReportResponse",
    "ReportStatusUpdate",
    "AnalystNotesUpdate",
    "RecipientCreate",
    "RecipientResponse",
    # Recommendations
    "RecommendationCategory",
    "RecommendationStatus",
    "RecommendationCreate",
    "RecommendationUpdate",
    "RecommendationResponse",
    "GlobalRecommendationCreate",
    "GlobalRecommendationUpdate",
    "GlobalRecommendationResponse",
    "WidgetRecommendationCreate",
    "WidgetRecommendationResponse",
    # Audit
    "AuditLogEntry",
    "AuditLogPage",
]
