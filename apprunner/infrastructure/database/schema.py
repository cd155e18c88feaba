"""Database schema bootstrap helpers.

Production databases rely on Alembic migrations. For SQLite-based development
we provide a best-effort helper to ensure tables exist at startup.
"""

from __future__ import annotations

from sqlalchemy import Engine

from apprunner.infrastructure.database.base import Base


def ensure_sqlite_schema(engine: Engine | None = None) -> None:
    """Best-effort schema creation for SQLite (other databases use Alembic)."""

    # Ensure ORM models are imported so they are registered on Base.metadata
    from apprunner.infrastructure.database import models as _models  # noqa: F401

    if engine is None:
        from apprunner.infrastructure.database.engine import sync_engine

        engine = sync_engine
    if engine.url.get_backend_name() == "sqlite":
        Base.metadata.create_all(bind=engine)
