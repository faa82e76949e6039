"""
Configuration service for ``config/admin`` and ``config/user_token``.

Reads never return the admin bearer value. They describe it through its
SHA-256 digest and, when it parses, the claims it carries.
"""

from typing import Any, Dict, List, Optional, Tuple

from ..constants import UsageFeature
from ..context.operation_context import operation
from ..exceptions import IntrospectionFailedError, validation_failed
from ..schemas.config_schemas import AdminConfiguration, UserTokenConfiguration
from ..utils.token_utils import introspect
from .base_service import BaseService

ADMIN_FIELDS = (
    "access_token",
    "url",
    "bypass_artifactory_tls_verification",
    "disable_usage_telemetry",
)
USER_TOKEN_FIELDS = ("audience", "default_ttl", "max_ttl", "default_description")

ConfigResult = Tuple[Dict[str, Any], List[str]]


def _pick(fields: Dict[str, Any], names: Tuple[str, ...]) -> Dict[str, Any]:
    return {name: fields[name] for name in names if fields.get(name) is not None}


class ConfigService(BaseService):
    """Reads and writes the backend's configuration records."""

    def _token_details(self, admin: AdminConfiguration, warnings: List[str]) -> Dict[str, Any]:
        try:
            info = introspect(admin.access_token)
        except IntrospectionFailedError as e:
            self.logger.warning(f"Error parsing access_token: {e.message}")
            warnings.append(f"Error parsing access_token: {e.message}")
            return {}

        details: Dict[str, Any] = {
            "token_id": info.token_id,
            "username": info.username,
            "scope": info.scope,
        }
        if info.expires:
            details["exp"] = info.expires
            details["expires"] = info.expires_at.isoformat()
        return details

    # ==================== ADMIN ====================

    @operation("config.write_admin")
    def write_admin(self, fields: Dict[str, Any], timeout: Optional[float] = None) -> List[str]:
        """
        Create or update the admin record.

        ``url`` and ``access_token`` are required when no record exists yet;
        afterwards any subset may be updated. Opaque (non-JWT) tokens are
        accepted with a warning since rotation needs a decodable token.

        Returns:
            Warnings for the caller
        """
        warnings: List[str] = []
        updates = _pick(fields, ADMIN_FIELDS)

        with self.lock.write_locked(timeout):
            existing = self.admin_configs.get()
            if existing is None:
                for required in ("url", "access_token"):
                    if not updates.get(required):
                        raise validation_failed(required, None, "is required")
                merged = updates
            else:
                merged = existing.model_dump() | updates

            admin = self._build(AdminConfiguration, merged)
            if "access_token" in updates:
                try:
                    introspect(admin.access_token)
                except IntrospectionFailedError:
                    warnings.append(
                        "access_token is not a JWT; config/rotate will not work with it"
                    )

            self.admin_configs.put(admin)
            self._report_usage(admin, UsageFeature.CONFIG_ADMIN_WRITE)

        self.logger.info("Admin configuration stored", extra={"url": admin.url})
        return warnings

    @operation("config.read_admin")
    def read_admin(self, timeout: Optional[float] = None) -> ConfigResult:
        warnings: List[str] = []
        with self.lock.read_locked(timeout):
            admin = self.admin_configs.require()
            self._report_usage(admin, UsageFeature.CONFIG_ADMIN_READ)

        data: Dict[str, Any] = {
            "url": admin.url,
            "bypass_artifactory_tls_verification": admin.bypass_artifactory_tls_verification,
            "disable_usage_telemetry": admin.disable_usage_telemetry,
            "access_token_sha256": admin.access_token_sha256,
        }
        data.update(self._token_details(admin, warnings))
        return data, warnings

    @operation("config.delete_admin")
    def delete_admin(self, timeout: Optional[float] = None) -> None:
        with self.lock.write_locked(timeout):
            self.admin_configs.delete()
        self.logger.info("Admin configuration deleted")

    # ==================== USER TOKEN ====================

    @operation("config.write_user_token")
    def write_user_token(self, fields: Dict[str, Any], timeout: Optional[float] = None) -> None:
        """
        Update the user-token defaults.

        Raises:
            ValidationError: ``max_ttl`` above the backend ceiling, or
                ``default_ttl`` above ``max_ttl``
        """
        with self.lock.write_locked(timeout):
            current = self.user_token_configs.get()
            updated = self._build(
                UserTokenConfiguration, current.model_dump() | _pick(fields, USER_TOKEN_FIELDS)
            )

            backend_max = self.settings.backend.max_lease_ttl
            if updated.max_ttl > backend_max:
                raise validation_failed(
                    "max_ttl",
                    updated.max_ttl,
                    f"cannot exceed backend max_lease_ttl ({backend_max})",
                )
            if updated.max_ttl and updated.default_ttl > updated.max_ttl:
                raise validation_failed("default_ttl", updated.default_ttl, "cannot exceed max_ttl")

            self.user_token_configs.put(updated)

            admin = self.admin_configs.get()
            if admin is not None:
                self._report_usage(admin, UsageFeature.CONFIG_USER_TOKEN_UPDATE)

    @operation("config.read_user_token")
    def read_user_token(self, timeout: Optional[float] = None) -> ConfigResult:
        """
        Return the user-token defaults plus details of the current admin token.

        Raises:
            NotConfiguredError: No admin credential
        """
        warnings: List[str] = []
        with self.lock.read_locked(timeout):
            admin = self.admin_configs.require()
            self._report_usage(admin, UsageFeature.CONFIG_USER_TOKEN_READ)
            user_defaults = self.user_token_configs.get()

        data: Dict[str, Any] = user_defaults.model_dump()
        data.update(self._token_details(admin, warnings))
        return data, warnings
