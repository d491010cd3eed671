"""Core module initialization."""

from app.core.config import Settings, get_settings
from app.core.database import (
    Base,
    get_db,
    get_db_context,
    get_db_stats,
    init_db,
)
from app.core.scheduler import get_scheduler, init_scheduler, trigger_manual_sync

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "get_db_context",
    "init_db",
    "get_db_stats",
    # Scheduler
    "get_scheduler",
    "init_scheduler",
    "trigger_manual_sync",
]
