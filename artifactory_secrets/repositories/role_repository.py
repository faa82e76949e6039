"""Repository for role templates stored under ``roles/<name>``."""

from typing import List, Optional

from ..constants import StorageKey
from ..schemas.role_schemas import RoleTemplate
from ..storage.base import Storage
from .base_repository import BaseRepository


class RoleRepository(BaseRepository[RoleTemplate]):
    def __init__(self, storage: Storage):
        super().__init__(storage, RoleTemplate)

    @staticmethod
    def _key(name: str) -> str:
        return f"{StorageKey.ROLE_PREFIX.value}{name}"

    def get(self, name: str) -> Optional[RoleTemplate]:
        return self._read(self._key(name))

    def put(self, role: RoleTemplate) -> None:
        self._write(self._key(role.name), role)

    def delete(self, name: str) -> None:
        self._delete(self._key(name))

    def list_names(self) -> List[str]:
        prefix = StorageKey.ROLE_PREFIX.value
        try:
            names = self.storage.list(prefix)
        except Exception as e:
            self._handle_storage_error(e, "list", prefix)
        return sorted(name for name in names if not name.endswith("/"))
