"""Per-tenant widget state and the live maturity breakdown."""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.api.services import evaluators
from app.api.services.graph_client import GraphClient
from app.api.services.maturity import compute_maturity_breakdown
from app.models.widget import TenantWidget, Widget

logger = logging.getLogger(__name__)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def tenant_widget_to_dict(row: TenantWidget) -> dict[str, Any]:
    """API shape of a tenant widget joined with its catalogue entry."""
    widget = row.widget
    return {
        "id": row.id,
        "tenantId": row.tenant_id,
        "widgetId": row.widget_id,
        "widgetName": widget.key,
        "name": widget.name,
        "description": widget.description,
        "category": widget.category,
        "manual": widget.manual,
        "scoringType": widget.scoring_type,
        "pointsAvailable": widget.points_available,
        "isEnabled": bool(row.is_enabled),
        "manuallyToggled": bool(row.manually_toggled),
        "forceManual": bool(row.force_manual),
        "customValue": row.custom_value,
        "lastUpdated": _iso(row.last_updated),
    }


class WidgetService:
    """Service for tenant widget toggles, custom values and maturity."""

    def __init__(self, db: Session):
        self.db = db

    def _tenant_widget(self, tenant_id: str, widget_id: str) -> TenantWidget | None:
        return (
            self.db.query(TenantWidget)
            .filter(TenantWidget.tenant_id == tenant_id, TenantWidget.widget_id == widget_id)
            .first()
        )

    def get_widget_by_key(self, key: str) -> Widget | None:
        return self.db.query(Widget).filter(Widget.key == key).first()

    def seed_manual_widgets(self, tenant_id: str) -> int:
        """Create disabled rows for manual widgets the tenant lacks."""
        existing = {
            widget_id
            for (widget_id,) in self.db.query(TenantWidget.widget_id)
            .filter(TenantWidget.tenant_id == tenant_id)
            .all()
        }
        missing = [
            w for w in self.db.query(Widget).filter(Widget.manual.is_(True)).all()
            if w.id not in existing
        ]
        if not missing:
            return 0

        logger.info(f"Seeding {len(missing)} missing manual widgets for tenant {tenant_id}")
        for widget in missing:
            self.db.add(TenantWidget(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                widget_id=widget.id,
                is_enabled=False,
                manually_toggled=False,
                force_manual=True,
            ))
        self.db.commit()
        return len(missing)

    def list_tenant_widgets(self, tenant_id: str) -> list[dict[str, Any]]:
        self.seed_manual_widgets(tenant_id)
        rows = (
            self.db.query(TenantWidget)
            .join(Widget, TenantWidget.widget_id == Widget.id)
            .filter(TenantWidget.tenant_id == tenant_id)
            .order_by(Widget.category, Widget.name)
            .all()
        )
        return [tenant_widget_to_dict(row) for row in rows]

    def toggle_widget(self, tenant_id: str, widget_id: str, is_enabled: bool) -> TenantWidget:
        """Upsert the enabled flag for a widget.

        Raises:
            ValueError: If the widget does not exist
        """
        if self.db.query(Widget).filter(Widget.id == widget_id).first() is None:
            raise ValueError(f"Widget {widget_id} not found")

        row = self._tenant_widget(tenant_id, widget_id)
        if row is None:
            row = TenantWidget(id=str(uuid.uuid4()), tenant_id=tenant_id, widget_id=widget_id)
            self.db.add(row)

        row.is_enabled = is_enabled
        row.manually_toggled = True
        row.last_updated = datetime.utcnow()
        self.db.commit()
        return row

    def set_custom_value(self, tenant_id: str, key: str, custom_value: float | None) -> TenantWidget | None:
        """Upsert a widget's custom value; None when the key is unknown."""
        widget = self.get_widget_by_key(key)
        if widget is None:
            return None

        row = self._tenant_widget(tenant_id, widget.id)
        if row is None:
            row = TenantWidget(id=str(uuid.uuid4()), tenant_id=tenant_id, widget_id=widget.id)
            self.db.add(row)

        row.custom_value = custom_value
        row.last_updated = datetime.utcnow()
        self.db.commit()
        return row

    def get_tenant_widget(self, tenant_id: str, key: str) -> dict[str, Any] | None:
        """Catalogue widget merged with the tenant row, with defaults."""
        widget = self.get_widget_by_key(key)
        if widget is None:
            return None

        row = self._tenant_widget(tenant_id, widget.id)
        return {
            "widgetId": widget.id,
            "key": widget.key,
            "name": widget.name,
            "description": widget.description,
            "scoringType": widget.scoring_type,
            "pointsAvailable": widget.points_available,
            "isEnabled": bool(row.is_enabled) if row else False,
            "manuallyToggled": bool(row.manually_toggled) if row else False,
            "forceManual": bool(row.force_manual) if row else False,
            "lastUpdated": _iso(row.last_updated) if row else None,
            "customValue": row.custom_value if row else None,
        }

    def manual_flags(self, tenant_id: str) -> dict[str, bool]:
        """Widget key -> enabled flag for the tenant's manual widgets."""
        rows = (
            self.db.query(TenantWidget)
            .join(Widget, TenantWidget.widget_id == Widget.id)
            .filter(TenantWidget.tenant_id == tenant_id, Widget.manual.is_(True))
            .all()
        )
        return {row.widget.key: bool(row.is_enabled) for row in rows}

    async def get_live_maturity(self, tenant_id: str, client: GraphClient) -> dict[str, Any]:
        """Maturity breakdown from live Graph reads plus manual flags."""
        auth_policy, named_locations, ca_policies, devices, compliance_policies = await asyncio.gather(
            client.get_authentication_methods_policy(),
            client.get_named_locations(),
            client.get_conditional_access_policies(),
            client.get_managed_devices(),
            client.get_device_compliance_policies(),
        )

        identities = {
            "phishResistantMFA": evaluators.group_phish_methods(auth_policy),
            "trustedLocationExists": evaluators.has_trusted_ip_location(named_locations),
            "riskySignInPolicyExists": evaluators.has_risk_based_sign_in_policy(ca_policies),
        }
        device_facts = {
            "unencryptedCount": evaluators.summarise_unencrypted_devices(devices)["count"],
            "compliancePolicyCount": len(compliance_policies),
        }

        return compute_maturity_breakdown(identities, device_facts, self.manual_flags(tenant_id))
