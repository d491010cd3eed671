"""Audit log model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped

from app.core.database import Base


class AuditLog(Base):
    """Record of a mutating action taken through the API."""

    __tablename__ = "audit_logs"

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str | None] = Column(String(255))
    tenant_id: Mapped[str | None] = Column(String(36), ForeignKey("tenants.id"))
    action: Mapped[str] = Column(String(100), nullable=False)
    details: Mapped[str | None] = Column(Text)
    entity_type: Mapped[str | None] = Column(String(50))
    entity_id: Mapped[str | None] = Column(String(100))
    timestamp: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} user={self.user_id} tenant={self.tenant_id}>"
