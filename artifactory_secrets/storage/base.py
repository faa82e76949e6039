"""
Key/value storage abstraction.

The host persists opaque blobs under string keys. Implementations must make a
``put`` visible atomically: readers see either the previous value or the new
one, never a partial write.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional

from pydantic import BaseModel

from ..utils.json_utils import dumps, loads


class StorageEntry(BaseModel):
    """One persisted record."""

    key: str
    value: str

    @classmethod
    def from_json(cls, key: str, obj: Any) -> "StorageEntry":
        return cls(key=key, value=dumps(obj))

    def decode_json(self) -> Any:
        return loads(self.value)


class Storage(ABC):
    """Abstract key/value store used by the repositories."""

    @abstractmethod
    def get(self, key: str) -> Optional[StorageEntry]:
        """Return the entry for ``key`` or None."""

    @abstractmethod
    def put(self, entry: StorageEntry) -> None:
        """Create or replace an entry."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; deleting a missing key is not an error."""

    @abstractmethod
    def list(self, prefix: str = "") -> List[str]:
        """Return sorted key suffixes under ``prefix`` (one level deep)."""
