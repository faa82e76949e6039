from .base_service import BaseService
from .config_service import ConfigService
from .revocation_service import RevocationService
from .role_service import RoleService
from .rotation_service import RotationService
from .token_issuance_service import TokenIssuanceService, resolve_ttl

__all__ = [
    "BaseService",
    "ConfigService",
    "RevocationService",
    "RoleService",
    "RotationService",
    "TokenIssuanceService",
    "resolve_ttl",
]
