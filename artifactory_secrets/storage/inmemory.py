"""In-memory storage, the default for tests and single-process hosts."""

import threading
from typing import Dict, List, Optional

from .base import Storage, StorageEntry


class InMemoryStorage(Storage):
    """Thread-safe dictionary-backed storage."""

    def __init__(self) -> None:
        self._entries: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[StorageEntry]:
        with self._lock:
            value = self._entries.get(key)
        if value is None:
            return None
        return StorageEntry(key=key, value=value)

    def put(self, entry: StorageEntry) -> None:
        with self._lock:
            self._entries[entry.key] = entry.value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def list(self, prefix: str = "") -> List[str]:
        with self._lock:
            keys = [key[len(prefix):] for key in self._entries if key.startswith(prefix)]
        return sorted({key.split("/", 1)[0] + ("/" if "/" in key else "") for key in keys})
