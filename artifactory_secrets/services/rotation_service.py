"""
Admin credential rotation.

Rotation replaces the stored admin token with a freshly created one carrying
the same scope, then revokes the predecessor. The whole sequence runs under
the write lock, so issuance never observes a half-rotated backend.

Failure semantics by step:

* introspect / probe / create fail: storage is untouched, the old token stays.
* persist fails: the new token is orphaned upstream (its id is logged) and the
  old token stays authoritative.
* revoke fails with NotFound: the predecessor is already gone; success.
* revoke fails otherwise: the new token is stored and in effect, the caller
  gets RevocationIncompleteError naming the stale token id.
"""

from typing import Optional

from ..client.artifactory_client import ArtifactoryClient
from ..constants import Defaults, UsageFeature
from ..context.operation_context import operation
from ..exceptions import (
    BaseError,
    PersistenceFailedError,
    RevocationIncompleteError,
    TokenNotFoundError,
)
from ..schemas.config_schemas import AdminConfiguration
from ..schemas.token_schemas import CreatedToken, TokenInfo, TokenRequest
from ..utils.token_utils import introspect
from .base_service import BaseService


class RotationService(BaseService):
    """Rotates the admin credential."""

    @operation("rotation.rotate")
    def rotate(
        self,
        username: Optional[str] = None,
        description: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> CreatedToken:
        """
        Rotate the admin token.

        Args:
            username: Override for the new token's username
            description: Override for the new token's description
            timeout: Deadline for lock acquisition and each upstream call

        Returns:
            The newly created admin token

        Raises:
            NotConfiguredError: No admin credential
            IntrospectionFailedError: Current token cannot be decoded
            UpstreamRejectedError: Artifactory refused to create the token
            PersistenceFailedError: New token could not be stored
            RevocationIncompleteError: New token stored, old one not revoked
        """
        with self.lock.write_locked(timeout):
            admin = self.admin_configs.require()
            self._report_usage(admin, UsageFeature.CONFIG_ROTATE_WRITE)

            current = introspect(admin.access_token)

            token_request = self._build(
                TokenRequest,
                {
                    "username": username or current.username or Defaults.ROTATED_ADMIN_USERNAME,
                    "scope": current.scope,
                    "description": description or Defaults.ROTATED_ADMIN_DESCRIPTION,
                },
            )

            with self.client_factory() as client:
                client.probe_capabilities(admin, timeout)
                created = client.create_token(admin, token_request, timeout)
                self._replace_admin(client, admin, current, created, timeout)

        return created

    def _replace_admin(
        self,
        client: ArtifactoryClient,
        admin: AdminConfiguration,
        current: TokenInfo,
        created: CreatedToken,
        timeout: Optional[float],
    ) -> None:
        """Persist the new admin token, then revoke its predecessor."""
        rotated = admin.model_copy(update={"access_token": created.access_token})
        try:
            self.admin_configs.put(rotated)
        except PersistenceFailedError as e:
            self.logger.error(
                "Rotated admin token could not be stored, previous token remains in effect",
                extra={"orphaned_token_id": created.token_id, "token_id": current.token_id},
            )
            e.add_context(orphaned_token_id=created.token_id)
            raise

        self.logger.info(
            "Admin token replaced",
            extra={"token_id": created.token_id, "previous_token_id": current.token_id},
        )

        try:
            client.revoke_token(rotated, admin.access_token, current.token_id, timeout)
        except TokenNotFoundError:
            self.logger.warning(
                "Previous admin token was already revoked",
                extra={"previous_token_id": current.token_id},
            )
        except BaseError as e:
            raise RevocationIncompleteError(current.token_id, cause=e)
