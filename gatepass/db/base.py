"""SQLAlchemy Base class for all models."""
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def import_models():
    """Import all models to register them with SQLAlchemy."""
    from gatepass.models import gate_pass, leave, notification, user  # noqa: F401
