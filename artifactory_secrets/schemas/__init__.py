"""Pydantic schemas for persisted records and Artifactory payloads."""

from .config_schemas import AdminConfiguration, UserTokenConfiguration
from .request_schemas import Request, Response, Secret
from .role_schemas import RoleTemplate
from .token_schemas import (
    CreatedToken,
    IssuedTokenLease,
    ServiceVersion,
    TokenInfo,
    TokenRequest,
    UserTokenOverrides,
    parse_version,
)

__all__ = [
    "AdminConfiguration",
    "UserTokenConfiguration",
    "Request",
    "Response",
    "Secret",
    "RoleTemplate",
    "CreatedToken",
    "IssuedTokenLease",
    "ServiceVersion",
    "TokenInfo",
    "TokenRequest",
    "UserTokenOverrides",
    "parse_version",
]
