"""
SQLAlchemy models and database configuration for persistent storage.
"""

from .db_base import TimestampMixin, utc_now
from .db_config import (
    Base,
    DatabaseConfig,
    DatabaseManager,
    init_db,
)
from .db_storage_models import StorageEntryRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "utc_now",
    "DatabaseConfig",
    "DatabaseManager",
    "init_db",
    "StorageEntryRecord",
]
