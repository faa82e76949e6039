"""SQLAlchemy-backed storage for hosts that need records to survive restarts."""

import threading
from typing import List, Optional

from ..db.db_config import DatabaseManager, init_db
from ..db.db_storage_models import StorageEntryRecord
from ..utils.crud_helpers import delete_record, get_record, list_record_ids, upsert_record
from .base import Storage, StorageEntry


class DatabaseStorage(Storage):
    """
    Storage over a single ``storage_entries`` table.

    Each operation runs in its own short-lived session so that concurrent
    request threads never share one.
    """

    def __init__(self, db_manager: DatabaseManager, create_tables: bool = True):
        self.db_manager = db_manager
        self._lock = threading.Lock()
        if create_tables:
            init_db(db_manager)

    def get(self, key: str) -> Optional[StorageEntry]:
        session = self.db_manager.session_factory()
        try:
            record = get_record(session, StorageEntryRecord, key)
            if record is None:
                return None
            return StorageEntry(key=record.key, value=record.value)
        finally:
            session.close()

    def put(self, entry: StorageEntry) -> None:
        session = self.db_manager.session_factory()
        try:
            with self._lock:
                upsert_record(
                    session, StorageEntryRecord, entry.key, {"key": entry.key, "value": entry.value}
                )
        finally:
            session.close()

    def delete(self, key: str) -> None:
        session = self.db_manager.session_factory()
        try:
            with self._lock:
                delete_record(session, StorageEntryRecord, key)
        finally:
            session.close()

    def list(self, prefix: str = "") -> List[str]:
        session = self.db_manager.session_factory()
        try:
            keys = list_record_ids(session, StorageEntryRecord, "key", prefix)
        finally:
            session.close()
        suffixes = [key[len(prefix):] for key in keys]
        return sorted({key.split("/", 1)[0] + ("/" if "/" in key else "") for key in suffixes})
