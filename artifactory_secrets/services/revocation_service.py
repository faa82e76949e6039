"""
Lease reconciliation for issued tokens: revoke on lease expiry, renew on request.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ..constants import UsageFeature
from ..context.operation_context import operation
from ..db.db_base import utc_now
from ..exceptions import ErrorCode, ServiceError, TokenNotFoundError, validation_failed
from .base_service import BaseService
from .token_issuance_service import resolve_ttl


class RevocationService(BaseService):
    """Revokes and renews leases using only their internal data."""

    def __init__(self, *args, clock: Callable[[], datetime] = utc_now, **kwargs):
        super().__init__(*args, **kwargs)
        self.clock = clock

    @operation("revocation.revoke")
    def revoke(self, internal_data: Dict[str, Any], timeout: Optional[float] = None) -> None:
        """
        Revoke the token behind a lease.

        A token that is already gone upstream counts as revoked.

        Raises:
            NotConfiguredError: No admin credential
            ValidationError: Lease data has no access token
            UpstreamRejectedError: Artifactory refused the revocation
        """
        access_token = internal_data.get("access_token")
        if not access_token:
            raise validation_failed("access_token", "***", "missing from lease data")
        token_id = internal_data.get("token_id")

        with self.lock.read_locked(timeout):
            admin = self.admin_configs.require()
            with self.client_factory() as client:
                client.probe_capabilities(admin, timeout)
                try:
                    client.revoke_token(admin, access_token, token_id, timeout)
                except TokenNotFoundError:
                    self.logger.warning(
                        "Token already revoked upstream", extra={"token_id": token_id}
                    )
            self._report_usage(admin, UsageFeature.SECRET_REVOKE)

    @operation("revocation.renew")
    def renew(
        self,
        internal_data: Dict[str, Any],
        increment: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> int:
        """
        Compute the TTL for a lease renewal.

        The role's current defaults apply when the role still exists, the
        ``config/user_token`` defaults otherwise. The result never runs past
        the ceiling fixed when the lease was issued.

        Returns:
            New lease TTL in seconds

        Raises:
            ServiceError: The lease has already reached its ceiling
        """
        with self.lock.read_locked(timeout):
            admin = self.admin_configs.require()

            role_name = internal_data.get("role")
            role = self.roles.get(role_name) if role_name else None
            if role is not None:
                default_ttl, max_ttl = role.default_ttl, role.max_ttl
            else:
                user_defaults = self.user_token_configs.get()
                default_ttl, max_ttl = user_defaults.default_ttl, user_defaults.max_ttl

            ttl, ceiling = resolve_ttl(increment, default_ttl, max_ttl, self.settings.backend)
            self._report_usage(admin, UsageFeature.SECRET_RENEW)

        lease_ceiling = int(internal_data.get("max_ttl") or ceiling)
        issued_at = internal_data.get("issued_at")
        if issued_at:
            elapsed = (self.clock() - datetime.fromisoformat(issued_at)).total_seconds()
            remaining = int(lease_ceiling - elapsed)
        else:
            remaining = lease_ceiling

        if remaining <= 0:
            raise ServiceError(
                "Lease has reached its max_ttl and cannot be renewed",
                error_code=ErrorCode.EXPIRED,
                operation="renew",
                status_code=400,
                token_id=internal_data.get("token_id"),
            )

        new_ttl = min(ttl, remaining)
        self.logger.info(
            "Lease renewed", extra={"token_id": internal_data.get("token_id"), "ttl": new_ttl}
        )
        return new_ttl
