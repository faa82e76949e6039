"""
Pydantic schemas for the backend's configuration records.

``config/admin`` holds the single privileged credential, ``config/user_token``
holds the defaults applied to ad hoc user tokens.
"""

import hashlib
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BaseRecordSchema(BaseModel):
    """Base schema for persisted records."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra="ignore",
    )


class AdminConfiguration(BaseRecordSchema):
    """The admin credential and how to reach the Artifactory that owns it."""

    access_token: str = Field(..., min_length=1, description="Admin bearer token")
    url: str = Field(..., min_length=1, description="Artifactory base URL")
    bypass_artifactory_tls_verification: bool = Field(
        default=False, description="Skip TLS certificate verification"
    )
    disable_usage_telemetry: bool = Field(
        default=False, description="Opt out of usage reporting to Artifactory"
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        """Require an http(s) URL and drop the trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return v.rstrip("/")

    @property
    def access_token_sha256(self) -> str:
        return hashlib.sha256(self.access_token.encode("utf-8")).hexdigest()

    def __repr__(self) -> str:
        return (
            f"AdminConfiguration(url='{self.url}', access_token='***', "
            f"bypass_artifactory_tls_verification={self.bypass_artifactory_tls_verification})"
        )


class UserTokenConfiguration(BaseRecordSchema):
    """Defaults for tokens issued through user_token/<username>."""

    audience: Optional[str] = Field(None, description="Default token audience")
    default_ttl: int = Field(default=0, ge=0, description="Default TTL in seconds, 0 = unset")
    max_ttl: int = Field(default=0, ge=0, description="Maximum TTL in seconds, 0 = unset")
    default_description: Optional[str] = Field(None, description="Default token description")
