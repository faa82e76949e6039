"""
Storage entry model - one row per persisted key.
"""

from sqlalchemy import Column, String, Text

from .db_base import TimestampMixin
from .db_config import Base


class StorageEntryRecord(Base, TimestampMixin):
    """Opaque JSON blob stored under a unique key."""

    __tablename__ = "storage_entries"

    key = Column(String(512), primary_key=True)
    value = Column(Text, nullable=False)
