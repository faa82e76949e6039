"""
Pydantic schemas for tokens exchanged with Artifactory and leases handed to the host.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..constants import Defaults, Versions


def parse_version(version: str) -> Optional[Tuple[int, int, int]]:
    """Parse the leading ``major.minor.patch`` of an Artifactory version string."""
    match = re.match(r"^\s*(\d+)(?:\.(\d+))?(?:\.(\d+))?", version or "")
    if not match:
        return None
    return tuple(int(part or 0) for part in match.groups())  # type: ignore[return-value]


class ServiceVersion(BaseModel):
    """Result of the capability probe."""

    version: str = Field(..., description="Artifactory version string")
    revision: Optional[str] = Field(None, description="Artifactory revision")

    @property
    def version_tuple(self) -> Tuple[int, int, int]:
        return parse_version(self.version) or (0, 0, 0)

    def at_least(self, minimum: str) -> bool:
        return self.version_tuple >= (parse_version(minimum) or (0, 0, 0))

    @property
    def uses_access_api(self) -> bool:
        return self.at_least(Versions.ACCESS_API)


class TokenRequest(BaseModel):
    """Parameters for a token-create call."""

    grant_type: str = Field(default=Defaults.GRANT_TYPE)
    username: str = Field(..., min_length=1)
    scope: str = Field(..., min_length=1)
    audience: Optional[str] = None
    expires_in: Optional[int] = Field(None, ge=0, description="Upstream expiry in seconds")
    description: Optional[str] = None

    def to_form(self) -> Dict[str, Any]:
        """Form fields for the create-token request; empty values are omitted."""
        return {k: v for k, v in self.model_dump().items() if v not in (None, "")}


class CreatedToken(BaseModel):
    """Token-create response."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_id: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None
    token_type: Optional[str] = None


class TokenInfo(BaseModel):
    """Claims recovered from a bearer token without a network call."""

    token_id: str
    username: str
    scope: str
    expires: int = Field(default=0, description="Expiry as unix seconds, 0 if none")
    audience: Optional[str] = None
    issuer: Optional[str] = None

    @property
    def expires_at(self) -> Optional[datetime]:
        if not self.expires:
            return None
        return datetime.fromtimestamp(self.expires, tz=timezone.utc)


class IssuedTokenLease(BaseModel):
    """A derived token plus the lease metadata the host tracks for it."""

    access_token: str
    token_id: str
    username: str
    scope: str
    role: Optional[str] = None
    ttl: int = Field(..., ge=0, description="Lease TTL in seconds")
    max_ttl: int = Field(..., ge=0, description="Lease ceiling in seconds")
    renewable: bool = True
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def internal_data(self) -> Dict[str, Any]:
        """What is needed to revoke or renew the token later."""
        return {
            "access_token": self.access_token,
            "token_id": self.token_id,
            "role": self.role,
            "username": self.username,
            "max_ttl": self.max_ttl,
            "issued_at": self.issued_at.isoformat(),
        }

    def to_response(self) -> Dict[str, Any]:
        data = {
            "access_token": self.access_token,
            "token_id": self.token_id,
            "username": self.username,
            "scope": self.scope,
        }
        if self.role:
            data["role"] = self.role
        return data


class UserTokenOverrides(BaseModel):
    """Caller-supplied fields on ``user_token/<username>``."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    scope: str = Field(default=Defaults.USER_TOKEN_SCOPE, min_length=1)
    audience: Optional[str] = None
    ttl: int = Field(default=0, ge=0, description="Requested lease TTL, 0 = default")
    max_ttl: int = Field(default=0, ge=0, description="Requested ceiling, 0 = default")
    description: Optional[str] = None
