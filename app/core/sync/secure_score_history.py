"""Monthly Microsoft Secure Score snapshots and retention cleanup."""

import logging
import math
from datetime import datetime

from app.api.services.graph_client import GraphClient
from app.api.services.maturity import shift_months
from app.api.services.scoring import round_half_up
from app.core.config import get_settings
from app.core.database import get_db_context
from app.models.score import SecureScoreHistory
from app.models.tenant import Microsoft365Connection, Tenant

logger = logging.getLogger(__name__)
settings = get_settings()


def _month_start(now: datetime) -> datetime:
    return datetime(now.year, now.month, 1)


async def capture_secure_scores_for_all_tenants(now: datetime | None = None) -> dict[str, int]:
    """Store this month's secure score for every connected tenant.

    Tenants that already have a row for the current month, or for which
    Graph returns no score, are skipped.

    Returns:
        Counts of ``captured``, ``skipped`` and ``errors``
    """
    now = now or datetime.utcnow()
    month_start = _month_start(now)
    next_month_start = datetime.combine(shift_months(month_start.date(), 1), datetime.min.time())

    logger.info(f"Starting secure score snapshot for {now.month}/{now.year}")

    captured = 0
    skipped = 0
    errors = 0

    try:
        with get_db_context() as db:
            tenants = (
                db.query(Tenant)
                .filter(Tenant.is_active, Tenant.deleted_at.is_(None))
                .all()
            )
            logger.info(f"Found {len(tenants)} active tenants for secure score snapshot")

            for tenant in tenants:
                try:
                    connection = (
                        db.query(Microsoft365Connection)
                        .filter(Microsoft365Connection.tenant_id == tenant.id)
                        .first()
                    )
                    if connection is None:
                        logger.info(f"No Microsoft 365 connection for tenant {tenant.name}")
                        skipped += 1
                        continue

                    existing = (
                        db.query(SecureScoreHistory)
                        .filter(
                            SecureScoreHistory.tenant_id == tenant.id,
                            SecureScoreHistory.recorded_at >= month_start,
                            SecureScoreHistory.recorded_at < next_month_start,
                        )
                        .first()
                    )
                    if existing is not None:
                        logger.info(f"Secure score already recorded for {tenant.name} in {now.month}/{now.year}")
                        skipped += 1
                        continue

                    client = GraphClient.for_connection(connection)
                    latest = await client.get_latest_secure_score()
                    if not latest or not latest.get("maxScore"):
                        logger.info(f"No secure score returned for tenant {tenant.name}")
                        skipped += 1
                        continue

                    current_score = latest.get("currentScore") or 0
                    max_score = latest["maxScore"]
                    percent = round_half_up(current_score / max_score * 100)

                    db.add(SecureScoreHistory(
                        tenant_id=tenant.id,
                        score=current_score,
                        max_score=max_score,
                        score_percent=percent,
                        recorded_at=now,
                        report_quarter=math.ceil(now.month / 3),
                        report_year=now.year,
                    ))
                    db.commit()
                    captured += 1
                    logger.info(
                        f"Captured secure score for {tenant.name}: "
                        f"{current_score}/{max_score} ({percent}%)"
                    )

                except Exception as e:
                    errors += 1
                    db.rollback()
                    logger.error(
                        f"Error capturing secure score for tenant {tenant.name}: {e}",
                        exc_info=True,
                    )

        logger.info(
            f"Secure score snapshot completed: {captured} captured, "
            f"{skipped} skipped, {errors} errors"
        )

    except Exception as e:
        logger.error(f"Fatal error during secure score snapshot: {e}", exc_info=True)
        raise

    return {"captured": captured, "skipped": skipped, "errors": errors}


def cleanup_old_secure_score_history(now: datetime | None = None) -> int:
    """Delete history recorded before the retention window.

    The cutoff is the first day of the current month, moved back by
    ``secure_score_history_retention_months``.

    Returns:
        Number of rows deleted
    """
    now = now or datetime.utcnow()
    cutoff_date = shift_months(_month_start(now).date(), -settings.secure_score_history_retention_months)
    cutoff = datetime.combine(cutoff_date, datetime.min.time())

    logger.info(f"Cleaning up secure score history recorded before {cutoff_date}")

    try:
        with get_db_context() as db:
            deleted = (
                db.query(SecureScoreHistory)
                .filter(SecureScoreHistory.recorded_at < cutoff)
                .delete(synchronize_session=False)
            )
    except Exception as e:
        logger.error(f"Fatal error during secure score history cleanup: {e}", exc_info=True)
        raise

    logger.info(f"Secure score history cleanup completed: {deleted} records deleted")
    return deleted
