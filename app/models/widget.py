"""Widget catalogue and per-tenant widget state models."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, relationship

from app.core.database import Base


class Widget(Base):
    """A scored security control shown as a dashboard panel."""

    __tablename__ = "widgets"

    id: Mapped[str] = Column(String(36), primary_key=True)
    key: Mapped[str] = Column(String(100), unique=True, nullable=False)
    name: Mapped[str] = Column(String(255), nullable=False)
    description: Mapped[str | None] = Column(Text)
    category: Mapped[str] = Column(String(100), nullable=False)
    manual: Mapped[bool] = Column(Boolean, default=False)
    scoring_type: Mapped[str] = Column(String(50), nullable=False)  # yesno, range, percentage, percentageInverse
    scoring_config: Mapped[dict] = Column(JSON, default=dict)
    points_available: Mapped[int | None] = Column(Integer)
    created_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<Widget {self.key} ({self.scoring_type})>"


class TenantWidget(Base):
    """Analyst-maintained state of a widget for one tenant."""

    __tablename__ = "tenant_widgets"
    __table_args__ = (
        UniqueConstraint("tenant_id", "widget_id", name="uq_tenant_widget"),
    )

    id: Mapped[str] = Column(String(36), primary_key=True)
    tenant_id: Mapped[str] = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    widget_id: Mapped[str] = Column(String(36), ForeignKey("widgets.id"), nullable=False)
    is_enabled: Mapped[bool] = Column(Boolean, default=False)
    manually_toggled: Mapped[bool] = Column(Boolean, default=False)
    force_manual: Mapped[bool] = Column(Boolean, default=False)
    custom_value: Mapped[float | None] = Column(Float)
    last_updated: Mapped[datetime | None] = Column(DateTime)

    widget: Mapped["Widget"] = relationship("Widget", lazy="joined")

    def __repr__(self) -> str:
        return f"<TenantWidget tenant={self.tenant_id} widget={self.widget_id} enabled={self.is_enabled}>"
