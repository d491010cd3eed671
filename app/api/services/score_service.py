"""Tenant maturity scoring and daily snapshots."""

import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from app.api.services.evaluators import latest_secure_score
from app.api.services.graph_client import GraphClient, MissingConnectionError
from app.api.services.maturity import shift_months
from app.api.services.scoring import calculate_widget_score, round_half_up, score_unsupported_devices
from app.api.services.scoring_fetchers import SCORING_DATA_FETCHERS
from app.api.services.widget_catalogue import UNSCORED_WIDGET_KEYS
from app.models.score import TenantScore
from app.models.tenant import Microsoft365Connection
from app.models.widget import TenantWidget, Widget

logger = logging.getLogger(__name__)

UNSUPPORTED_DEVICES_KEY = "unsupportedDevices"


def score_to_dict(row: TenantScore) -> dict[str, Any]:
    """API shape of a stored daily score."""
    return {
        "id": row.id,
        "tenantId": row.tenant_id,
        "scoreDate": row.score_date.isoformat(),
        "totalScore": row.total_score,
        "maxScore": row.max_score,
        "totalScorePct": row.total_score_pct,
        "microsoftSecureScore": row.microsoft_secure_score,
        "microsoftSecureScorePct": row.microsoft_secure_score_pct,
        "breakdown": row.breakdown or {},
        "lastUpdated": row.last_updated.isoformat() if row.last_updated else None,
    }


class ScoreService:
    """Calculates maturity scores from Graph data and manual widget state."""

    def __init__(
        self,
        db: Session,
        client_factory: Callable[[Microsoft365Connection], GraphClient] | None = None,
    ):
        self.db = db
        self.client_factory = client_factory or GraphClient.for_connection

    def get_connection(self, tenant_id: str) -> Microsoft365Connection:
        connection = (
            self.db.query(Microsoft365Connection)
            .filter(Microsoft365Connection.tenant_id == tenant_id)
            .first()
        )
        if connection is None:
            raise MissingConnectionError(tenant_id)
        return connection

    def get_client(self, tenant_id: str) -> GraphClient:
        """Graph client for the tenant's stored connection.

        Raises:
            MissingConnectionError: If the tenant has no connection
        """
        return self.client_factory(self.get_connection(tenant_id))

    def _tenant_widgets(self, tenant_id: str) -> dict[str, TenantWidget]:
        rows = self.db.query(TenantWidget).filter(TenantWidget.tenant_id == tenant_id).all()
        return {row.widget_id: row for row in rows}

    async def _widget_value(
        self,
        widget: Widget,
        tenant_widgets: dict[str, TenantWidget],
        client: GraphClient,
    ) -> Any:
        if widget.manual:
            tenant_widget = tenant_widgets.get(widget.id)
            if widget.key == UNSUPPORTED_DEVICES_KEY:
                value = tenant_widget.custom_value if tenant_widget else None
                return 100 if value is None else value
            return bool(tenant_widget.is_enabled) if tenant_widget else False

        fetcher = SCORING_DATA_FETCHERS.get(widget.key)
        if fetcher is None:
            logger.warning(f"No fetcher defined for widget {widget.key}")
            return None
        return await fetcher(client)

    async def calculate_tenant_score(
        self,
        tenant_id: str,
        client: GraphClient | None = None,
    ) -> dict[str, Any]:
        """Score every catalogue widget for a tenant.

        Returns:
            ``{"totalScore", "maxScore", "breakdown"}`` where breakdown maps
            widget key to points earned

        Raises:
            MissingConnectionError: If the tenant has no connection
        """
        client = client or self.get_client(tenant_id)
        tenant_widgets = self._tenant_widgets(tenant_id)

        total_score = 0
        max_score = 0
        breakdown: dict[str, int] = {}

        for widget in self.db.query(Widget).order_by(Widget.key).all():
            if widget.key in UNSCORED_WIDGET_KEYS:
                logger.debug(f"Skipping {widget.key} (not scored yet)")
                continue

            value = await self._widget_value(widget, tenant_widgets, client)

            if widget.key == UNSUPPORTED_DEVICES_KEY:
                score = score_unsupported_devices(value)
            else:
                score = round_half_up(calculate_widget_score(widget.scoring_type, widget.scoring_config, value))

            breakdown[widget.key] = score
            total_score += score

            if widget.points_available is not None:
                max_score += widget.points_available
            elif widget.key == UNSUPPORTED_DEVICES_KEY:
                max_score += 10

        logger.info(f"Tenant {tenant_id} scored {total_score}/{max_score}")
        return {"totalScore": total_score, "maxScore": max_score, "breakdown": breakdown}

    async def save_tenant_daily_scores(
        self,
        tenant_id: str,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Calculate today's scores and upsert the tenant_scores row."""
        now = now or datetime.now(timezone.utc)
        client = self.get_client(tenant_id)

        latest = latest_secure_score(await client.get_secure_scores(), now)
        secure_score = (latest or {}).get("currentScore") or 0
        secure_max = (latest or {}).get("maxScore")
        secure_score_pct = round_half_up(secure_score / secure_max * 100, 2) if secure_max else 0

        result = await self.calculate_tenant_score(tenant_id, client)
        total_score = result["totalScore"]
        max_score = result["maxScore"]
        total_score_pct = round_half_up(total_score / max_score * 100, 2) if max_score else 0

        score_date = now.date()
        row = (
            self.db.query(TenantScore)
            .filter(TenantScore.tenant_id == tenant_id, TenantScore.score_date == score_date)
            .first()
        )
        if row is None:
            row = TenantScore(tenant_id=tenant_id, score_date=score_date)
            self.db.add(row)

        row.total_score = total_score
        row.max_score = max_score
        row.total_score_pct = total_score_pct
        row.microsoft_secure_score = secure_score
        row.microsoft_secure_score_pct = secure_score_pct
        row.breakdown = result["breakdown"]
        row.last_updated = datetime.utcnow()
        self.db.commit()

        return {
            "tenantId": tenant_id,
            "totalScore": total_score,
            "maxScore": max_score,
            "totalScorePct": total_score_pct,
            "microsoftSecureScore": secure_score,
            "microsoftSecureScorePct": secure_score_pct,
        }

    def get_recent_scores(
        self,
        tenant_id: str,
        months: int = 3,
        today: date | None = None,
    ) -> list[TenantScore]:
        """Daily scores newer than ``months`` ago, newest first."""
        cutoff = shift_months(today or date.today(), -months)
        return (
            self.db.query(TenantScore)
            .filter(TenantScore.tenant_id == tenant_id, TenantScore.score_date > cutoff)
            .order_by(TenantScore.score_date.desc())
            .all()
        )
