"""Database initialization utilities."""
from sqlalchemy.engine import Engine

from gatepass.core.logging import get_logger
from gatepass.db.base import Base, import_models

logger = get_logger(__name__)


def init_db(bind: Engine | None = None) -> None:
    """
    Create all tables that do not exist yet.

    Note: This is suitable for development/testing only.
    For production, use migrations instead.
    """
    if bind is None:
        from gatepass.db.session import engine as bind

    import_models()
    Base.metadata.create_all(bind=bind)
    logger.info("Database tables ensured", extra={"tables": sorted(Base.metadata.tables)})
