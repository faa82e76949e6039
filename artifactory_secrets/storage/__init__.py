"""Key/value storage backends."""

from ..config import StorageConfig
from ..db.db_config import DatabaseConfig, DatabaseManager
from ..exceptions import ErrorCode, ServiceError
from .base import Storage, StorageEntry
from .database import DatabaseStorage
from .inmemory import InMemoryStorage


def create_storage(config: StorageConfig) -> Storage:
    """
    Build the storage backend named by ``config``.

    Raises:
        ServiceError: The backend name is not one this package provides
    """
    if config.backend == "database":
        manager = DatabaseManager(DatabaseConfig(connection_string=config.connection_string))
        return DatabaseStorage(manager)
    if config.backend == "memory":
        return InMemoryStorage()
    raise ServiceError(
        f"Unknown storage backend: {config.backend}",
        error_code=ErrorCode.CONFIGURATION_ERROR,
        operation="create_storage",
        backend=config.backend,
    )


__all__ = [
    "Storage",
    "StorageEntry",
    "InMemoryStorage",
    "DatabaseStorage",
    "create_storage",
]
