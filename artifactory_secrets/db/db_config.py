"""
Engine and session setup for the ``database`` storage backend.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..utils.logger import get_logger

# Base class for all SQLAlchemy models
Base: Any = declarative_base()

IN_MEMORY_SQLITE = "sqlite://"


class DatabaseConfig(BaseModel):
    """Connection settings for the storage database."""

    connection_string: str = Field(default=IN_MEMORY_SQLITE, description="SQLAlchemy URL")
    pool_size: int = Field(default=5, gt=0)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: int = Field(default=30, gt=0)
    echo: bool = False

    @field_validator("connection_string")
    @classmethod
    def validate_connection_string(cls, v: str) -> str:
        try:
            make_url(v)
        except ArgumentError as e:
            raise ValueError(f"Invalid database URL: {e}")
        return v

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.connection_string).get_backend_name() == "sqlite"

    @property
    def is_in_memory(self) -> bool:
        url = make_url(self.connection_string)
        return self.is_sqlite and url.database in (None, "", ":memory:")

    def __repr__(self) -> str:
        """Connection URL with the password masked."""
        masked = make_url(self.connection_string).render_as_string(hide_password=True)
        return f"DatabaseConfig(connection_string='{masked}')"


class DatabaseManager:
    """Owns the engine and the session factory used by DatabaseStorage."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine = self._create_engine()
        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def _create_engine(self) -> Engine:
        url = self.config.connection_string
        if not self.config.is_sqlite:
            return create_engine(
                url,
                echo=self.config.echo,
                pool_size=self.config.pool_size,
                max_overflow=self.config.max_overflow,
                pool_timeout=self.config.pool_timeout,
                pool_pre_ping=True,
            )

        # Request threads share the engine
        connect_args = {"check_same_thread": False}
        if self.config.is_in_memory:
            # A single connection, otherwise each thread would get its own empty database
            return create_engine(
                url, echo=self.config.echo, connect_args=connect_args, poolclass=StaticPool
            )
        return create_engine(url, echo=self.config.echo, connect_args=connect_args)

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def close(self) -> None:
        self.engine.dispose()


def init_db(db_manager: DatabaseManager) -> None:
    """Register the storage models and create their tables."""
    # Registers StorageEntryRecord on Base.metadata
    from . import db_storage_models  # noqa: F401

    get_logger().info("Initializing storage database", extra={"database": repr(db_manager.config)})
    db_manager.create_tables()
