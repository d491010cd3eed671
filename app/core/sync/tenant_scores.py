"""Daily maturity score snapshots for every tenant."""

import logging
from datetime import datetime
from typing import Any

from app.api.services.graph_client import MissingConnectionError
from app.api.services.score_service import ScoreService
from app.core.database import get_db_context
from app.models.tenant import Tenant

logger = logging.getLogger(__name__)


async def run_daily_scores(now: datetime | None = None) -> list[dict[str, Any]]:
    """Calculate and store today's score for each live tenant.

    A failing tenant does not stop the batch; it is reported as a
    ``{"tenantId", "error"}`` entry in the returned list.
    """
    logger.info(f"Starting daily tenant scores at {datetime.utcnow()}")

    results: list[dict[str, Any]] = []
    total_scored = 0
    total_errors = 0

    try:
        with get_db_context() as db:
            tenants = (
                db.query(Tenant)
                .filter(Tenant.is_active, Tenant.deleted_at.is_(None))
                .all()
            )
            logger.info(f"Found {len(tenants)} active tenants to score")

            service = ScoreService(db)
            for tenant in tenants:
                try:
                    result = await service.save_tenant_daily_scores(tenant.id, now=now)
                    results.append(result)
                    total_scored += 1
                except MissingConnectionError as e:
                    total_errors += 1
                    logger.warning(f"Skipping tenant {tenant.name}: {e}")
                    results.append({"tenantId": tenant.id, "error": str(e)})
                except Exception as e:
                    total_errors += 1
                    db.rollback()
                    logger.error(
                        f"Failed to calculate score for tenant {tenant.name}: {e}",
                        exc_info=True,
                    )
                    results.append({"tenantId": tenant.id, "error": str(e)})

        logger.info(
            f"Daily tenant scores completed: {total_scored} scored, "
            f"{total_errors} errors encountered"
        )

    except Exception as e:
        logger.error(f"Fatal error during daily tenant scores: {e}", exc_info=True)
        raise

    return results
