"""SQLite database configuration and session management.

Features:
- Connection pooling for non-SQLite backends
- Slow query logging
- Indexes for the common tenant/date query patterns
"""

import logging
import time
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import Index, create_engine, event, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Ensure data directory exists
if settings.is_sqlite:
    db_path = settings.database_url.replace("sqlite:///", "")
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine_args: dict[str, Any] = {
    "echo": settings.debug and settings.enable_query_logging,
}

if settings.is_sqlite:
    engine_args["connect_args"] = {"check_same_thread": False}
    if settings.database_url.endswith(":memory:"):
        # One shared connection, otherwise every session sees an empty database
        engine_args["poolclass"] = StaticPool
else:
    engine_args.update({
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_timeout": settings.database_pool_timeout,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    })

engine = create_engine(settings.database_url, **engine_args)


@event.listens_for(engine, "before_cursor_execute")
def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Capture query start time for performance monitoring."""
    conn.info.setdefault("query_start_time", []).append(time.perf_counter())


@event.listens_for(engine, "after_cursor_execute")
def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    """Log slow queries based on configured threshold."""
    start_time = conn.info["query_start_time"].pop()
    total_time = (time.perf_counter() - start_time) * 1000

    if total_time > settings.slow_query_threshold_ms:
        logger.warning(f"Slow query detected ({total_time:.2f}ms): {statement[:200]}...")

    if settings.debug and settings.enable_query_logging:
        logger.debug(f"Query executed in {total_time:.2f}ms: {statement[:100]}...")


if settings.is_sqlite:

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """Set SQLite pragmas for concurrent access and FK enforcement."""
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency for database sessions."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for database sessions (for background jobs)."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Initialize database tables."""
    # Import models to register them with Base
    from app import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    _create_indexes()


def _create_indexes() -> None:
    """Create database indexes for common query patterns."""
    indexes = [
        Index("idx_tenants_active", "tenants", "is_active"),
        Index("idx_tenant_widgets_tenant", "tenant_widgets", "tenant_id"),
        Index("idx_tenant_scores_tenant_date", "tenant_scores", "tenant_id", "score_date"),
        Index("idx_secure_score_history_tenant", "secure_score_history", "tenant_id", "recorded_at"),
        Index("idx_reports_tenant", "reports", "tenant_id"),
        Index("idx_recommendations_tenant", "recommendations", "tenant_id", "status"),
        Index("idx_audit_logs_tenant", "audit_logs", "tenant_id", "timestamp"),
        Index("idx_invites_email", "invites", "email"),
    ]

    with engine.connect() as conn:
        for index in indexes:
            try:
                index.create(conn, checkfirst=True)
            except Exception as e:
                logger.debug(f"Index creation skipped (may already exist): {e}")
        conn.commit()


def get_db_stats(db: Session) -> dict[str, Any]:
    """Get table row counts for the detailed health check."""
    stats: dict[str, Any] = {}

    tables = [
        "tenants", "widgets", "tenant_widgets", "tenant_scores",
        "secure_score_history", "reports", "audit_logs",
    ]

    for table in tables:
        try:
            result = db.execute(text(f"SELECT COUNT(*) FROM {table}"))
            stats[f"{table}_count"] = result.scalar()
        except Exception as e:
            logger.debug(f"Row count unavailable for {table}: {e}")
            stats[f"{table}_count"] = None

    return stats
