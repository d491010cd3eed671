"""Background jobs that snapshot tenant scores."""

from app.core.sync.secure_score_history import (
    capture_secure_scores_for_all_tenants,
    cleanup_old_secure_score_history,
)
from app.core.sync.tenant_scores import run_daily_scores

__all__ = [
    "run_daily_scores",
    "capture_secure_scores_for_all_tenants",
    "cleanup_old_secure_score_history",
]
