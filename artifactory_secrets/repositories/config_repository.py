"""
Repository for the two configuration records: ``config/admin`` and
``config/user_token``.
"""

from typing import Optional

from ..constants import StorageKey
from ..exceptions import NotConfiguredError
from ..schemas.config_schemas import AdminConfiguration, UserTokenConfiguration
from ..storage.base import Storage
from .base_repository import BaseRepository


class AdminConfigRepository(BaseRepository[AdminConfiguration]):
    """The single admin credential record."""

    def __init__(self, storage: Storage):
        super().__init__(storage, AdminConfiguration)

    def get(self) -> Optional[AdminConfiguration]:
        return self._read(StorageKey.ADMIN.value)

    def require(self) -> AdminConfiguration:
        """
        Load the admin record.

        Raises:
            NotConfiguredError: No admin record has been written
        """
        config = self.get()
        if config is None:
            raise NotConfiguredError()
        return config

    def put(self, config: AdminConfiguration) -> None:
        self._write(StorageKey.ADMIN.value, config)

    def delete(self) -> None:
        self._delete(StorageKey.ADMIN.value)


class UserTokenConfigRepository(BaseRepository[UserTokenConfiguration]):
    """Defaults for user tokens; a missing record reads as all defaults."""

    def __init__(self, storage: Storage):
        super().__init__(storage, UserTokenConfiguration)

    def get(self) -> UserTokenConfiguration:
        return self._read(StorageKey.USER_TOKEN.value) or UserTokenConfiguration()

    def put(self, config: UserTokenConfiguration) -> None:
        self._write(StorageKey.USER_TOKEN.value, config)
