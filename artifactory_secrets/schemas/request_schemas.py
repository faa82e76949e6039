"""
Request and response envelopes exchanged with the host.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..constants import Operation


class Secret(BaseModel):
    """Lease bookkeeping the host keeps for an issued token."""

    internal_data: Dict[str, Any] = Field(default_factory=dict)
    ttl: int = Field(default=0, ge=0)
    max_ttl: int = Field(default=0, ge=0)
    renewable: bool = True


class Request(BaseModel):
    operation: Operation
    path: str
    data: Dict[str, Any] = Field(default_factory=dict)
    timeout: Optional[float] = Field(None, gt=0, description="Caller deadline in seconds")


class Response(BaseModel):
    data: Optional[Dict[str, Any]] = None
    warnings: List[str] = Field(default_factory=list)
    secret: Optional[Secret] = None
    error: Optional[Dict[str, Any]] = None
    status_code: int = 200

    @property
    def is_error(self) -> bool:
        return self.error is not None
