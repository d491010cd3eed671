"""Tenant, user-tenant access and Microsoft 365 connection models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, relationship

from app.core.database import Base


class Tenant(Base):
    """Client organization whose Microsoft 365 environment is monitored.

    Deleting a tenant only stamps ``deleted_at``; history is kept so a
    re-created tenant with the same Azure tenant id picks it back up.
    """

    __tablename__ = "tenants"

    id: Mapped[str] = Column(String(36), primary_key=True)
    name: Mapped[str] = Column(String(255), nullable=False)
    tenant_id: Mapped[str] = Column(String(36), unique=True, nullable=False)  # Azure AD tenant GUID
    description: Mapped[str | None] = Column(Text)
    is_active: Mapped[bool] = Column(Boolean, default=True)
    deleted_at: Mapped[datetime | None] = Column(DateTime)
    created_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    user_mappings: Mapped[list["UserTenant"]] = relationship(
        "UserTenant", back_populates="tenant", cascade="all, delete-orphan"
    )
    connection: Mapped["Microsoft365Connection | None"] = relationship(
        "Microsoft365Connection", back_populates="tenant", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def has_connection(self) -> bool:
        return self.connection is not None

    def __repr__(self) -> str:
        return f"<Tenant {self.name} ({self.tenant_id})>"


class UserTenant(Base):
    """User-to-tenant access mapping."""

    __tablename__ = "user_tenants"
    __table_args__ = (
        UniqueConstraint("user_id", "tenant_id", name="uq_user_tenant"),
        Index("idx_user_tenants_tenant_id", "tenant_id"),
    )

    id: Mapped[str] = Column(String(36), primary_key=True)
    user_id: Mapped[str] = Column(String(255), nullable=False, index=True)
    tenant_id: Mapped[str] = Column(
        String(36), ForeignKey("tenants.id"), nullable=False
    )
    is_active: Mapped[bool] = Column(Boolean, default=True)
    granted_by: Mapped[str | None] = Column(String(255))
    granted_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="user_mappings")

    def __repr__(self) -> str:
        return f"<UserTenant user={self.user_id} tenant={self.tenant_id}>"


class Microsoft365Connection(Base):
    """App registration credentials used to call Graph for one tenant."""

    __tablename__ = "microsoft365_connections"

    id: Mapped[str] = Column(String(36), primary_key=True)
    tenant_id: Mapped[str] = Column(
        String(36), ForeignKey("tenants.id"), unique=True, nullable=False
    )
    tenant_name: Mapped[str] = Column(String(255), nullable=False)
    tenant_domain: Mapped[str] = Column(String(255), nullable=False)  # GUID or *.onmicrosoft.com
    client_id: Mapped[str] = Column(String(36), nullable=False)
    client_secret: Mapped[str] = Column(String(500), nullable=False)
    created_by: Mapped[str | None] = Column(String(255))
    created_at: Mapped[datetime] = Column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="connection")

    def __repr__(self) -> str:
        return f"<Microsoft365Connection {self.tenant_name} ({self.tenant_domain})>"
