"""Quarterly report Pydantic schemas."""

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ReportStatusValue = Literal["new", "reviewed", "analyst_ready", "manager_ready", "sent"]


class ReportCreate(BaseModel):
    """Schema for creating a report.

    ``security_data`` keeps the dashboard's camelCase metric groups:
    identityMetrics, deviceMetrics, cloudMetrics and threatMetrics.
    """

    title: str = Field(..., min_length=1, max_length=255)
    year: int = Field(..., ge=2000, le=2100)
    month: str | None = Field(None, max_length=20)
    quarter: int | None = Field(None, ge=1, le=4)
    security_data: dict[str, Any] = Field(default_factory=dict)
    summary: str | None = None
    recommendations: str | None = None


class ReportUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    summary: str | None = None
    recommendations: str | None = None
    analyst_comments: str | None = None
    security_data: dict[str, Any] | None = None


class ReportStatusUpdate(BaseModel):
    status: ReportStatusValue


class AnalystNotesUpdate(BaseModel):
    analyst_notes: str | None = None


class RecipientCreate(BaseModel):
    email: str = Field(..., max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    name: str | None = Field(None, max_length=255)


class RecipientResponse(BaseModel):
    id: int
    report_id: int
    email: str
    name: str | None = None
    sent_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ReportResponse(BaseModel):
    """Schema for report response."""

    id: int
    tenant_id: str
    title: str
    quarter: int | None = None
    month: str | None = None
    year: int
    start_date: date | None = None
    end_date: date | None = None
    overall_risk_score: int
    identity_risk_score: int
    training_risk_score: int
    device_risk_score: int
    cloud_risk_score: int
    threat_risk_score: int
    risk_level: str | None = None
    status: str
    security_data: dict[str, Any] = Field(default_factory=dict)
    summary: str | None = None
    recommendations: str | None = None
    analyst_comments: str | None = None
    analyst_notes: str | None = None
    created_by: str | None = None
    approved_by: str | None = None
    created_at: datetime
    updated_at: datetime
    sent_at: datetime | None = None

    model_config = {"from_attributes": True}
