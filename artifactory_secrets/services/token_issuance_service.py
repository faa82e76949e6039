"""
Token issuance: minting scoped, short-lived tokens with the admin credential.

TTL ceilings are enforced here before anything is sent upstream. The token is
created with ``expires_in`` set to the lease ceiling so that renewals up to
that ceiling remain valid, while the lease itself starts at the effective TTL.
"""

from typing import Any, Dict, Optional, Tuple

from ..config import BackendSettings
from ..constants import UsageFeature
from ..context.operation_context import operation
from ..exceptions import RoleNotFoundError, validation_failed
from ..schemas.token_schemas import IssuedTokenLease, TokenRequest, UserTokenOverrides
from .base_service import BaseService


def resolve_ttl(
    requested: Optional[int],
    default_ttl: int,
    max_ttl: int,
    backend: BackendSettings,
) -> Tuple[int, int]:
    """
    Resolve the lease TTL and its ceiling.

    Args:
        requested: TTL asked for by the caller, 0/None for the default
        default_ttl: Role or user-token default, 0 = unset
        max_ttl: Role or user-token ceiling, 0 = unset
        backend: Host lease limits

    Returns:
        Tuple of (effective_ttl, max_ttl) in seconds
    """
    if requested is not None and requested < 0:
        raise validation_failed("ttl", requested, "must not be negative")

    ceiling = backend.max_lease_ttl
    if max_ttl and max_ttl < ceiling:
        ceiling = max_ttl

    ttl = requested or default_ttl or backend.default_lease_ttl
    return min(ttl, ceiling), ceiling


class TokenIssuanceService(BaseService):
    """Issues role tokens and ad hoc user tokens under the read lock."""

    @operation("token_issuance.issue_role_token")
    def issue_role_token(
        self, role_name: str, ttl: Optional[int] = None, timeout: Optional[float] = None
    ) -> IssuedTokenLease:
        """
        Mint a token from a stored role template.

        Raises:
            NotConfiguredError: No admin credential
            RoleNotFoundError: Role does not exist
            UpstreamRejectedError: Artifactory refused the request
        """
        with self.lock.read_locked(timeout):
            admin = self.admin_configs.require()
            role = self.roles.get(role_name)
            if role is None:
                raise RoleNotFoundError(role_name)

            effective_ttl, ceiling = resolve_ttl(
                ttl, role.default_ttl, role.max_ttl, self.settings.backend
            )

            token_request = TokenRequest(
                grant_type=role.grant_type,
                username=role.effective_username,
                scope=role.scope,
                audience=role.audience,
                expires_in=ceiling,
                description=role.default_description,
            )

            with self.client_factory() as client:
                client.probe_capabilities(admin, timeout)
                created = client.create_token(admin, token_request, timeout)
            self._report_usage(admin, UsageFeature.TOKEN_CREATE)

        self.logger.info(
            "Role token issued",
            extra={"role": role_name, "token_id": created.token_id, "ttl": effective_ttl},
        )
        return IssuedTokenLease(
            access_token=created.access_token,
            token_id=created.token_id,
            username=token_request.username,
            scope=created.scope or token_request.scope,
            role=role_name,
            ttl=effective_ttl,
            max_ttl=ceiling,
        )

    @operation("token_issuance.issue_user_token")
    def issue_user_token(
        self,
        username: str,
        overrides: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> IssuedTokenLease:
        """
        Mint a token for ``username`` using the ``config/user_token`` defaults.

        A caller-supplied ``max_ttl`` can lower the configured ceiling but never
        raise it.
        """
        if not username or not username.strip():
            raise validation_failed("username", username, "must not be empty")
        fields = self._build(UserTokenOverrides, overrides or {})

        with self.lock.read_locked(timeout):
            admin = self.admin_configs.require()
            defaults = self.user_token_configs.get()

            ceilings = [value for value in (defaults.max_ttl, fields.max_ttl) if value]
            effective_ttl, ceiling = resolve_ttl(
                fields.ttl,
                defaults.default_ttl,
                min(ceilings) if ceilings else 0,
                self.settings.backend,
            )

            token_request = TokenRequest(
                username=username.strip(),
                scope=fields.scope,
                audience=fields.audience or defaults.audience,
                expires_in=ceiling,
                description=fields.description or defaults.default_description,
            )

            with self.client_factory() as client:
                client.probe_capabilities(admin, timeout)
                created = client.create_token(admin, token_request, timeout)
            self._report_usage(admin, UsageFeature.USER_TOKEN_CREATE)

        self.logger.info(
            "User token issued",
            extra={"username": token_request.username, "token_id": created.token_id},
        )
        return IssuedTokenLease(
            access_token=created.access_token,
            token_id=created.token_id,
            username=token_request.username,
            scope=created.scope or token_request.scope,
            ttl=effective_ttl,
            max_ttl=ceiling,
        )
