"""Recommendations management service."""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.models.recommendation import (
    GlobalRecommendation,
    Recommendation,
    TenantWidgetRecommendation,
)

logger = logging.getLogger(__name__)

COMPLETED = "completed"


class RecommendationService:
    """Service for tenant, global and widget-pinned recommendations."""

    def __init__(self, db: Session):
        self.db = db

    # -------------------------------------------------------------------------
    # Tenant recommendations
    # -------------------------------------------------------------------------

    def get_recommendations(self, tenant_id: str, status: str | None = None) -> list[Recommendation]:
        """Tenant recommendations, newest first."""
        query = self.db.query(Recommendation).filter(Recommendation.tenant_id == tenant_id)
        if status:
            query = query.filter(Recommendation.status == status)
        return query.order_by(Recommendation.created_at.desc(), Recommendation.id.desc()).all()

    def get_recommendation(self, tenant_id: str, recommendation_id: int) -> Recommendation | None:
        return (
            self.db.query(Recommendation)
            .filter(Recommendation.id == recommendation_id, Recommendation.tenant_id == tenant_id)
            .first()
        )

    def create_recommendation(
        self,
        tenant_id: str,
        data: dict[str, Any],
        created_by: str | None = None,
    ) -> Recommendation:
        recommendation = Recommendation(tenant_id=tenant_id, created_by=created_by, status="open", **data)
        self.db.add(recommendation)
        self.db.commit()
        self.db.refresh(recommendation)
        return recommendation

    def update_recommendation(self, recommendation: Recommendation, changes: dict[str, Any]) -> Recommendation:
        """Apply changes; moving to completed stamps ``completed_at``."""
        previous_status = recommendation.status
        for field, value in changes.items():
            setattr(recommendation, field, value)

        if recommendation.status == COMPLETED and previous_status != COMPLETED:
            recommendation.completed_at = datetime.utcnow()
        elif recommendation.status != COMPLETED:
            recommendation.completed_at = None

        recommendation.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(recommendation)
        return recommendation

    def delete_recommendation(self, recommendation: Recommendation) -> None:
        self.db.delete(recommendation)
        self.db.commit()

    # -------------------------------------------------------------------------
    # Global recommendation library
    # -------------------------------------------------------------------------

    def get_global_recommendations(
        self,
        category: str | None = None,
        include_inactive: bool = False,
    ) -> list[GlobalRecommendation]:
        query = self.db.query(GlobalRecommendation)
        if not include_inactive:
            query = query.filter(GlobalRecommendation.active.is_(True))
        if category:
            query = query.filter(GlobalRecommendation.category == category)
        return query.order_by(GlobalRecommendation.priority, GlobalRecommendation.title).all()

    def get_global_recommendation(self, recommendation_id: int) -> GlobalRecommendation | None:
        return self.db.query(GlobalRecommendation).filter(GlobalRecommendation.id == recommendation_id).first()

    def create_global_recommendation(self, data: dict[str, Any], created_by: str | None = None) -> GlobalRecommendation:
        recommendation = GlobalRecommendation(created_by=created_by, active=True, **data)
        self.db.add(recommendation)
        self.db.commit()
        self.db.refresh(recommendation)
        return recommendation

    def update_global_recommendation(
        self,
        recommendation: GlobalRecommendation,
        changes: dict[str, Any],
    ) -> GlobalRecommendation:
        for field, value in changes.items():
            setattr(recommendation, field, value)
        recommendation.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(recommendation)
        return recommendation

    def delete_global_recommendation(self, recommendation: GlobalRecommendation) -> None:
        """Delete a library entry and any widget pins that use it."""
        pins = (
            self.db.query(TenantWidgetRecommendation)
            .filter(TenantWidgetRecommendation.global_recommendation_id == recommendation.id)
            .delete(synchronize_session=False)
        )
        if pins:
            logger.info(f"Removed {pins} widget pins for global recommendation {recommendation.id}")
        self.db.delete(recommendation)
        self.db.commit()

    # -------------------------------------------------------------------------
    # Widget pins
    # -------------------------------------------------------------------------

    def get_widget_recommendations(
        self,
        tenant_id: str,
        widget_type: str | None = None,
    ) -> list[TenantWidgetRecommendation]:
        query = self.db.query(TenantWidgetRecommendation).filter(
            TenantWidgetRecommendation.tenant_id == tenant_id,
            TenantWidgetRecommendation.active.is_(True),
        )
        if widget_type:
            query = query.filter(TenantWidgetRecommendation.widget_type == widget_type)
        return query.order_by(TenantWidgetRecommendation.created_at).all()

    def add_widget_recommendation(
        self,
        tenant_id: str,
        global_recommendation_id: int,
        widget_type: str,
        created_by: str | None = None,
    ) -> TenantWidgetRecommendation:
        """Pin a global recommendation to a tenant widget type.

        Raises:
            ValueError: If the global recommendation does not exist
        """
        if self.get_global_recommendation(global_recommendation_id) is None:
            raise ValueError(f"Global recommendation {global_recommendation_id} not found")

        pin = TenantWidgetRecommendation(
            tenant_id=tenant_id,
            global_recommendation_id=global_recommendation_id,
            widget_type=widget_type,
            created_by=created_by,
            active=True,
        )
        self.db.add(pin)
        self.db.commit()
        self.db.refresh(pin)
        return pin

    def remove_widget_recommendation(self, tenant_id: str, pin_id: int) -> bool:
        pin = (
            self.db.query(TenantWidgetRecommendation)
            .filter(TenantWidgetRecommendation.id == pin_id, TenantWidgetRecommendation.tenant_id == tenant_id)
            .first()
        )
        if pin is None:
            return False
        self.db.delete(pin)
        self.db.commit()
        return True
