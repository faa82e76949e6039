"""Role registry: named templates for token issuance."""

from typing import Any, Dict, List

from ..context.operation_context import operation
from ..exceptions import RoleNotFoundError, validation_failed
from ..schemas.role_schemas import RoleTemplate
from .base_service import BaseService

ROLE_FIELDS = (
    "grant_type",
    "username",
    "scope",
    "audience",
    "default_ttl",
    "max_ttl",
    "default_description",
)


class RoleService(BaseService):
    """
    Manages role templates.

    Writes replace the whole template; fields not supplied fall back to their
    defaults rather than to the previous record.
    """

    @operation("roles.put")
    def put(self, name: str, fields: Dict[str, Any]) -> RoleTemplate:
        """
        Validate and store a role template.

        Raises:
            ValidationError: Missing scope, bad name, or TTLs out of order or
                above the backend ceiling
        """
        data = {key: fields[key] for key in ROLE_FIELDS if fields.get(key) is not None}
        role = self._build(RoleTemplate, {**data, "name": name})

        backend_max = self.settings.backend.max_lease_ttl
        if role.max_ttl > backend_max:
            raise validation_failed(
                "max_ttl", role.max_ttl, f"cannot exceed backend max_lease_ttl ({backend_max})"
            )

        self.roles.put(role)
        self.logger.info("Role stored", extra={"role": name, "scope": role.scope})
        return role

    def get(self, name: str) -> RoleTemplate:
        role = self.roles.get(name)
        if role is None:
            raise RoleNotFoundError(name)
        return role

    @operation("roles.delete")
    def delete(self, name: str) -> None:
        self.roles.delete(name)
        self.logger.info("Role deleted", extra={"role": name})

    def list(self) -> List[str]:
        return self.roles.list_names()
