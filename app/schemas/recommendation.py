"""Recommendation-related Pydantic schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class RecommendationCategory(str, Enum):
    """Risk categories a tenant recommendation belongs to."""

    IDENTITY = "identity"
    TRAINING = "training"
    DEVICE = "device"
    CLOUD = "cloud"
    THREAT = "threat"


class RecommendationPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class RecommendationStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DISMISSED = "dismissed"


class GlobalPriority(str, Enum):
    """Priority labels used by the global recommendation library."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    INFO = "Info"


class RecommendationCreate(BaseModel):
    category: RecommendationCategory
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    priority: RecommendationPriority = RecommendationPriority.MEDIUM
    assigned_to: str | None = None


class RecommendationUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    priority: RecommendationPriority | None = None
    status: RecommendationStatus | None = None
    assigned_to: str | None = None


class RecommendationResponse(BaseModel):
    """Tenant recommendation."""

    id: int
    tenant_id: str
    category: str
    title: str
    description: str
    priority: str
    status: str
    created_by: str | None = None
    assigned_to: str | None = None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class GlobalRecommendationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    priority: GlobalPriority
    category: str = Field(..., min_length=1, max_length=50)
    icon: str | None = Field(None, max_length=100)


class GlobalRecommendationUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    priority: GlobalPriority | None = None
    category: str | None = Field(None, min_length=1, max_length=50)
    icon: str | None = None
    active: bool | None = None


class GlobalRecommendationResponse(BaseModel):
    id: int
    title: str
    description: str
    priority: str
    category: str
    icon: str | None = None
    active: bool
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class WidgetRecommendationCreate(BaseModel):
    """Pin a global recommendation to a dashboard widget type."""

    global_recommendation_id: int
    widget_type: str = Field(..., min_length=1, max_length=50)


class WidgetRecommendationResponse(BaseModel):
    id: int
    tenant_id: str
    global_recommendation_id: int
    widget_type: str
    active: bool
    created_at: datetime
    global_recommendation: GlobalRecommendationResponse | None = None

    model_config = {"from_attributes": True}
