from .base_repository import BaseRepository
from .config_repository import AdminConfigRepository, UserTokenConfigRepository
from .role_repository import RoleRepository

__all__ = [
    "BaseRepository",
    "AdminConfigRepository",
    "UserTokenConfigRepository",
    "RoleRepository",
]
