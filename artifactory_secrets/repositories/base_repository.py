"""
Base repository with the read/write plumbing shared by all record types.

Records are pydantic models serialised to JSON under a storage key. Any
storage failure is mapped onto the BaseError hierarchy so services never see
driver exceptions.
"""

from typing import Generic, NoReturn, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import BaseError, ErrorCode, PersistenceFailedError, RepositoryError
from ..storage.base import Storage, StorageEntry
from ..utils.logger import get_logger

T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """Base repository over the key/value Storage."""

    def __init__(self, storage: Storage, record_class: Type[T]):
        """
        Initialize the base repository.

        Args:
            storage: Key/value storage supplied by the host
            record_class: Pydantic model this repository persists
        """
        self.storage = storage
        self.record_class = record_class
        self.record_name = record_class.__name__
        self.logger = get_logger()

    def _handle_storage_error(
        self, e: Exception, operation_name: str, key: str, write: bool = False
    ) -> NoReturn:
        """
        Map a storage failure onto a RepositoryError.

        Writes always raise PersistenceFailedError; a failed write is fatal
        to whatever operation attempted it.
        """
        if isinstance(e, BaseError):
            raise e

        context = {"operation_name": operation_name, "record_type": self.record_name, "key": key}
        if write:
            raise PersistenceFailedError(
                f"Failed to {operation_name} {self.record_name}: {str(e)}", cause=e, **context
            )
        raise RepositoryError(
            f"Storage error in {operation_name} for {self.record_name}: {str(e)}",
            error_code=ErrorCode.DATABASE_ERROR,
            cause=e,
            **context,
        )

    def _read(self, key: str) -> Optional[T]:
        try:
            entry = self.storage.get(key)
        except Exception as e:
            self._handle_storage_error(e, "read", key)

        if entry is None:
            return None

        try:
            return self.record_class.model_validate(entry.decode_json())
        except (ValueError, PydanticValidationError) as e:
            raise RepositoryError(
                f"Stored {self.record_name} is corrupt",
                error_code=ErrorCode.INVALID_FORMAT,
                cause=e,
                key=key,
            )

    def _write(self, key: str, record: T) -> None:
        try:
            self.storage.put(StorageEntry.from_json(key, record.model_dump(mode="json")))
        except Exception as e:
            self._handle_storage_error(e, "write", key, write=True)
        self.logger.debug(f"Stored {self.record_name}", extra={"key": key})

    def _delete(self, key: str) -> None:
        try:
            self.storage.delete(key)
        except Exception as e:
            self._handle_storage_error(e, "delete", key, write=True)
        self.logger.debug(f"Deleted {self.record_name}", extra={"key": key})
