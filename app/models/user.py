"""Dashboard user and invite models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped

from app.core.database import Base


class AppUser(Base):
    """A person with access to the dashboard.

    Identity is owned by the sign-in provider; this row only carries the
    role and profile the dashboard needs.
    """

    __tablename__ = "users"

    id: Mapped[str] = Column(String(255), primary_key=True)
    email: Mapped[str | None] = Column(String(255), unique=True)
    first_name: Mapped[str | None] = Column(String(255))
    last_name: Mapped[str | None] = Column(String(255))
    role: Mapped[str] = Column(String(50), nullable=False, default="user")
    created_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @property
    def display_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or (self.email or self.id)

    def __repr__(self) -> str:
        return f"<AppUser {self.email} role={self.role}>"


class Invite(Base):
    """Pending invitation for a new user to join a tenant."""

    __tablename__ = "invites"

    id: Mapped[str] = Column(String(36), primary_key=True)
    email: Mapped[str] = Column(String(255), nullable=False)
    first_name: Mapped[str | None] = Column(String(255))
    last_name: Mapped[str | None] = Column(String(255))
    role: Mapped[str] = Column(String(50), nullable=False)
    tenant_id: Mapped[str] = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    token: Mapped[str] = Column(String(255), unique=True, nullable=False)
    expires_at: Mapped[datetime] = Column(DateTime, nullable=False)
    accepted: Mapped[bool] = Column(Boolean, default=False)
    created_by: Mapped[str | None] = Column(String(255))
    created_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.utcnow()) > self.expires_at

    def __repr__(self) -> str:
        return f"<Invite {self.email} tenant={self.tenant_id} accepted={self.accepted}>"
