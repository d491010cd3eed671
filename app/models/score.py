"""Score snapshot models."""

from datetime import date, datetime

from sqlalchemy import JSON, Column, Date, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped

from app.core.database import Base


class TenantScore(Base):
    """Daily maturity and secure score snapshot; one row per tenant per day."""

    __tablename__ = "tenant_scores"
    __table_args__ = (
        UniqueConstraint("tenant_id", "score_date", name="uq_tenant_score_date"),
    )

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    score_date: Mapped[date] = Column(Date, nullable=False, default=date.today)
    total_score: Mapped[float] = Column(Float, default=0.0)
    max_score: Mapped[float] = Column(Float, default=0.0)
    total_score_pct: Mapped[float] = Column(Float, default=0.0)
    microsoft_secure_score: Mapped[float] = Column(Float, default=0.0)
    microsoft_secure_score_pct: Mapped[float] = Column(Float, default=0.0)
    breakdown: Mapped[dict] = Column(JSON, default=dict)  # widget key -> points
    last_updated: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<TenantScore {self.tenant_id} {self.score_date}: {self.total_score}/{self.max_score}>"


class SecureScoreHistory(Base):
    """Monthly Microsoft Secure Score capture used for quarterly reporting."""

    __tablename__ = "secure_score_history"

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    score: Mapped[float] = Column(Float, nullable=False)
    score_percent: Mapped[float] = Column(Float, nullable=False)
    max_score: Mapped[float | None] = Column(Float)
    recorded_at: Mapped[datetime] = Column(DateTime, nullable=False, default=datetime.utcnow)
    report_quarter: Mapped[int | None] = Column(Integer)
    report_year: Mapped[int | None] = Column(Integer)

    def __repr__(self) -> str:
        return f"<SecureScoreHistory {self.tenant_id} {self.recorded_at:%Y-%m}: {self.score_percent}%>"
