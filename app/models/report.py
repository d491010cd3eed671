"""Quarterly security report models."""

from datetime import date, datetime

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, relationship

from app.core.database import Base


class Report(Base):
    """Quarterly risk report for a tenant."""

    __tablename__ = "reports"

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    title: Mapped[str] = Column(String(255), nullable=False)
    quarter: Mapped[int | None] = Column(Integer)
    month: Mapped[str | None] = Column(String(20))
    year: Mapped[int] = Column(Integer, nullable=False)
    start_date: Mapped[date | None] = Column(Date)
    end_date: Mapped[date | None] = Column(Date)

    overall_risk_score: Mapped[int] = Column(Integer, nullable=False)
    identity_risk_score: Mapped[int] = Column(Integer, nullable=False)
    training_risk_score: Mapped[int] = Column(Integer, nullable=False)
    device_risk_score: Mapped[int] = Column(Integer, nullable=False)
    cloud_risk_score: Mapped[int] = Column(Integer, nullable=False)
    threat_risk_score: Mapped[int] = Column(Integer, nullable=False)

    status: Mapped[str] = Column(String(30), nullable=False, default="new")
    security_data: Mapped[dict] = Column(JSON, nullable=False, default=dict)
    summary: Mapped[str | None] = Column(Text)
    recommendations: Mapped[str | None] = Column(Text)
    analyst_comments: Mapped[str | None] = Column(Text)
    analyst_notes: Mapped[str | None] = Column(Text)

    created_by: Mapped[str | None] = Column(String(255))
    approved_by: Mapped[str | None] = Column(String(255))
    created_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    sent_at: Mapped[datetime | None] = Column(DateTime)

    recipients: Mapped[list["ReportRecipient"]] = relationship(
        "ReportRecipient", back_populates="report", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Report {self.title} Q{self.quarter} {self.year} ({self.status})>"


class ReportRecipient(Base):
    """Email recipient of a report."""

    __tablename__ = "report_recipients"

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    report_id: Mapped[int] = Column(Integer, ForeignKey("reports.id"), nullable=False)
    email: Mapped[str] = Column(String(255), nullable=False)
    name: Mapped[str | None] = Column(String(255))
    sent_at: Mapped[datetime | None] = Column(DateTime)
    created_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)

    report: Mapped["Report"] = relationship("Report", back_populates="recipients")
