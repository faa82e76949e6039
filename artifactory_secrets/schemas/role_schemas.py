"""
Pydantic schema for role templates stored under ``roles/<name>``.
"""

import re
from typing import Any, Dict, Optional

from pydantic import Field, field_validator, model_validator

from ..constants import Defaults
from .config_schemas import BaseRecordSchema

ROLE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+$")


class RoleTemplate(BaseRecordSchema):
    """Named template used to parametrize token issuance."""

    name: str = Field(..., min_length=1, max_length=128, description="Role name")
    grant_type: str = Field(default=Defaults.GRANT_TYPE, description="Token grant type")
    username: Optional[str] = Field(None, description="Artifactory username for issued tokens")
    scope: str = Field(..., min_length=1, description="Token scope")
    audience: Optional[str] = Field(None, description="Token audience")
    default_ttl: int = Field(default=0, ge=0, description="Default TTL in seconds, 0 = unset")
    max_ttl: int = Field(default=0, ge=0, description="Maximum TTL in seconds, 0 = unset")
    default_description: Optional[str] = Field(None, description="Token description")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Role names become storage key suffixes."""
        if not ROLE_NAME_PATTERN.match(v):
            raise ValueError(
                "Role name can only contain letters, numbers, underscore, hyphen, and dot"
            )
        return v

    @model_validator(mode="after")
    def validate_ttls(self) -> "RoleTemplate":
        if self.max_ttl and self.default_ttl > self.max_ttl:
            raise ValueError("default_ttl cannot exceed max_ttl")
        return self

    @property
    def effective_username(self) -> str:
        return self.username or f"{Defaults.ROLE_USERNAME_PREFIX}{self.name}"

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"name"}) | {"role": self.name}
