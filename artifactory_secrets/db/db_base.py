"""
Shared column helpers for the storage models.
"""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime


def utc_now():
    """Return current UTC time with timezone info attached."""
    return datetime.now(UTC)


class TimestampMixin:
    """Simple mixin for created_at/updated_at timestamps."""

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)
