"""Recommendation database models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, relationship

from app.core.database import Base


class Recommendation(Base):
    """Security recommendation raised for a single tenant."""

    __tablename__ = "recommendations"

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    category: Mapped[str] = Column(String(50), nullable=False)  # identity, training, device, cloud, threat
    title: Mapped[str] = Column(String(255), nullable=False)
    description: Mapped[str] = Column(Text, nullable=False)
    priority: Mapped[str] = Column(String(20), nullable=False)  # high, medium, low, info
    status: Mapped[str] = Column(String(20), nullable=False, default="open")
    created_by: Mapped[str | None] = Column(String(255))
    assigned_to: Mapped[str | None] = Column(String(255))
    created_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at: Mapped[datetime | None] = Column(DateTime)

    def __repr__(self) -> str:
        return f"<Recommendation {self.category}: {self.title} ({self.status})>"


class GlobalRecommendation(Base):
    """Reusable recommendation text maintained by admins."""

    __tablename__ = "global_recommendations"

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = Column(String(255), nullable=False)
    description: Mapped[str] = Column(Text, nullable=False)
    priority: Mapped[str] = Column(String(20), nullable=False)  # High, Medium, Low, Info
    category: Mapped[str] = Column(String(50), nullable=False)
    icon: Mapped[str | None] = Column(String(100))
    active: Mapped[bool] = Column(Boolean, default=True)
    created_by: Mapped[str | None] = Column(String(255))
    created_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class TenantWidgetRecommendation(Base):
    """Pins a global recommendation to one of a tenant's dashboard widgets."""

    __tablename__ = "tenant_widget_recommendations"

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    global_recommendation_id: Mapped[int] = Column(
        Integer, ForeignKey("global_recommendations.id"), nullable=False
    )
    widget_type: Mapped[str] = Column(String(50), nullable=False)  # SecureScore, DeviceScore, Identity, ...
    active: Mapped[bool] = Column(Boolean, default=True)
    created_by: Mapped[str | None] = Column(String(255))
    created_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    global_recommendation: Mapped["GlobalRecommendation"] = relationship("GlobalRecommendation", lazy="joined")
