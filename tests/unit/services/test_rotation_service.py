"""
Unit tests for admin credential rotation.

Each failure point of the rotation sequence is exercised against real
storage and a FakeArtifactory that issues genuine JWTs.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from artifactory_secrets.constants import Defaults, StorageKey, UsageFeature
from artifactory_secrets.exceptions import (
    ErrorCode,
    IntrospectionFailedError,
    LockTimeoutError,
    NotConfiguredError,
    PersistenceFailedError,
    RevocationIncompleteError,
    UpstreamRejectedError,
    UpstreamUnreachableError,
    ValidationError,
)
from artifactory_secrets.repositories import AdminConfigRepository
from artifactory_secrets.schemas.config_schemas import AdminConfiguration
from artifactory_secrets.services import RotationService
from artifactory_secrets.utils.token_utils import introspect
from tests.conftest import ARTIFACTORY_URL


def _stored_admin(storage) -> AdminConfiguration:
    return AdminConfigRepository(storage).require()


def _raw_admin(storage) -> str:
    return storage.get(StorageKey.ADMIN.value).value


class TestRotate:
    """Test the successful rotation paths."""

    def test_not_configured(self, rotation_service, fake_artifactory):
        with pytest.raises(NotConfiguredError):
            rotation_service.rotate()

        assert fake_artifactory.created == []

    def test_rotate_without_fields(self, configured_storage, rotation_service, fake_artifactory, admin_token):
        """Test that the new token replaces the old one, which is revoked."""
        old = introspect(admin_token)

        created = rotation_service.rotate()

        stored = _stored_admin(configured_storage)
        assert stored.access_token == created.access_token
        assert stored.url == ARTIFACTORY_URL
        assert fake_artifactory.revoked == [old.token_id]
        assert fake_artifactory.is_live(created.token_id)
        assert not fake_artifactory.is_live(old.token_id)

    def test_scope_and_username_preserved(self, configured_storage, rotation_service, fake_artifactory):
        """Test that the new token has the old token's scope and username."""
        rotation_service.rotate()

        info = introspect(_stored_admin(configured_storage).access_token)
        assert info.scope == "applied-permissions/admin"
        assert info.username == "admin"
        assert fake_artifactory.created[-1].description == Defaults.ROTATED_ADMIN_DESCRIPTION

    def test_username_override(self, configured_storage, rotation_service):
        """Test rotating with username=svc-x keeps scope and changes username."""
        rotation_service.rotate(username="svc-x")

        info = introspect(_stored_admin(configured_storage).access_token)
        assert info.username == "svc-x"
        assert info.scope == "applied-permissions/admin"

    def test_non_string_username_rejected(self, configured_storage, rotation_service, fake_artifactory):
        before = _raw_admin(configured_storage)

        with pytest.raises(ValidationError) as exc_info:
            rotation_service.rotate(username=123)

        assert exc_info.value.error_code == ErrorCode.VALIDATION_FAILED
        assert exc_info.value.context["field"] == "username"
        assert fake_artifactory.created == []
        assert _raw_admin(configured_storage) == before

    def test_description_override(self, configured_storage, rotation_service, fake_artifactory):
        rotation_service.rotate(description="quarterly rotation")

        assert fake_artifactory.created[-1].description == "quarterly rotation"

    def test_default_username_when_token_has_none(self, storage, rotation_service, fake_artifactory):
        """Test the fallback username for tokens whose subject names no user."""
        token = fake_artifactory.mint(subject="jfac@01g5hek6kb29520rbz71v91cw9")
        AdminConfigRepository(storage).put(
            AdminConfiguration(access_token=token.access_token, url=ARTIFACTORY_URL)
        )

        rotation_service.rotate()

        assert fake_artifactory.created[-1].username == Defaults.ROTATED_ADMIN_USERNAME

    def test_rotate_twice(self, configured_storage, rotation_service, fake_artifactory, admin_token):
        """Test that two rotations leave one stored token and revoke both predecessors."""
        original = introspect(admin_token).token_id

        first = rotation_service.rotate()
        second = rotation_service.rotate()

        assert fake_artifactory.revoked == [original, first.token_id]
        assert _stored_admin(configured_storage).access_token == second.access_token
        assert configured_storage.list("config/") == ["admin"]

    def test_revoke_uses_new_credential(self, configured_storage, rotation_service, fake_artifactory):
        """Test that the predecessor is revoked with the new admin token."""
        created = rotation_service.rotate()

        assert fake_artifactory.revoked_with == [created.access_token]

    def test_predecessor_already_revoked(self, configured_storage, rotation_service, fake_artifactory, admin_token):
        """Test that NotFound on revoke still counts as a successful rotation."""
        fake_artifactory.forget(introspect(admin_token).token_id)

        created = rotation_service.rotate()

        assert _stored_admin(configured_storage).access_token == created.access_token
        assert fake_artifactory.revoked == []

    def test_preserves_other_admin_fields(self, storage, rotation_service, admin_token):
        AdminConfigRepository(storage).put(
            AdminConfiguration(
                access_token=admin_token,
                url=ARTIFACTORY_URL,
                bypass_artifactory_tls_verification=True,
                disable_usage_telemetry=True,
            )
        )

        rotation_service.rotate()

        stored = _stored_admin(storage)
        assert stored.bypass_artifactory_tls_verification is True
        assert stored.disable_usage_telemetry is True

    def test_usage_reported(self, configured_storage, rotation_service, fake_artifactory, usage_reporter):
        rotation_service.rotate()
        usage_reporter.shutdown(wait=True)

        assert fake_artifactory.usage == [UsageFeature.CONFIG_ROTATE_WRITE.value]


class TestRotateFailures:
    """Test that each failure point leaves a consistent state."""

    def test_create_failure_leaves_storage_identical(self, configured_storage, rotation_service, fake_artifactory):
        before = _raw_admin(configured_storage)
        fake_artifactory.create_error = UpstreamRejectedError("denied", upstream_status=400)

        with pytest.raises(UpstreamRejectedError):
            rotation_service.rotate()

        assert _raw_admin(configured_storage) == before
        assert fake_artifactory.revoked == []

    def test_probe_failure_leaves_storage_identical(self, configured_storage, rotation_service, fake_artifactory):
        before = _raw_admin(configured_storage)
        fake_artifactory.probe_error = UpstreamUnreachableError()

        with pytest.raises(UpstreamUnreachableError):
            rotation_service.rotate()

        assert _raw_admin(configured_storage) == before
        assert fake_artifactory.created == []

    def test_opaque_token_cannot_be_rotated(self, storage, rotation_service, fake_artifactory):
        """Test that an undecodable admin token stops rotation before any upstream call."""
        AdminConfigRepository(storage).put(
            AdminConfiguration(access_token="opaque-reference-token", url=ARTIFACTORY_URL)
        )
        before = _raw_admin(storage)

        with pytest.raises(IntrospectionFailedError):
            rotation_service.rotate()

        assert _raw_admin(storage) == before
        assert fake_artifactory.probes == 0
        assert fake_artifactory.created == []

    def test_persistence_failure_keeps_old_credential(
        self, failing_storage, lock, app_config, fake_artifactory, admin_config
    ):
        """Test that a failed write leaves the old token stored and unrevoked."""
        AdminConfigRepository(failing_storage).put(admin_config)
        failing_storage.fail_puts.add(StorageKey.ADMIN.value)
        service = RotationService(failing_storage, lock, app_config, lambda: fake_artifactory)
        old_id = introspect(admin_config.access_token).token_id

        with pytest.raises(PersistenceFailedError) as exc_info:
            service.rotate()

        orphan = exc_info.value.context["orphaned_token_id"]
        assert fake_artifactory.is_live(orphan)
        assert orphan != old_id
        assert _stored_admin(failing_storage).access_token == admin_config.access_token
        assert fake_artifactory.revoked == []
        assert fake_artifactory.is_live(old_id)

    def test_revoke_failure_is_incomplete(self, configured_storage, rotation_service, fake_artifactory, admin_token):
        """Test that a non-NotFound revoke failure reports the new token as in effect."""
        old_id = introspect(admin_token).token_id
        fake_artifactory.revoke_error = UpstreamRejectedError("server error", upstream_status=500)

        with pytest.raises(RevocationIncompleteError) as exc_info:
            rotation_service.rotate()

        error = exc_info.value
        assert error.error_code == ErrorCode.DOWNSTREAM_ERROR
        assert "new token is in effect" in error.message
        assert old_id in error.message
        assert error.context["stale_token_id"] == old_id
        assert isinstance(error.cause, UpstreamRejectedError)

        stored = _stored_admin(configured_storage)
        assert stored.access_token != admin_token
        assert fake_artifactory.is_live(introspect(stored.access_token).token_id)


    def test_client_released_after_failure(
        self, configured_storage, rotation_service, fake_artifactory, usage_reporter
    ):
        fake_artifactory.revoke_error = UpstreamRejectedError("server error", upstream_status=500)

        with pytest.raises(RevocationIncompleteError):
            rotation_service.rotate()
        usage_reporter.shutdown(wait=True)

        assert fake_artifactory.open_clients == 0


class TestRotationLocking:
    """Test that rotation is exclusive with respect to readers."""

    def test_rotation_waits_for_readers(self, configured_storage, rotation_service, lock, fake_artifactory):
        before = _raw_admin(configured_storage)

        with lock.read_locked():
            with pytest.raises(LockTimeoutError):
                rotation_service.rotate(timeout=0.05)

        assert _raw_admin(configured_storage) == before
        assert fake_artifactory.created == []

    def test_issuance_blocked_during_rotation(
        self, configured_storage, rotation_service, issuance_service, role_service, fake_artifactory
    ):
        """Test that issuance cannot run while a rotation holds the write lock."""
        role_service.put("dev", {"scope": "api:*"})
        in_create = threading.Event()
        release = threading.Event()

        def hold(_request):
            in_create.set()
            assert release.wait(timeout=5)

        fake_artifactory.create_hook = hold

        with ThreadPoolExecutor(max_workers=1) as executor:
            rotation = executor.submit(rotation_service.rotate)
            assert in_create.wait(timeout=5)
            fake_artifactory.create_hook = None

            with pytest.raises(LockTimeoutError):
                issuance_service.issue_role_token("dev", timeout=0.05)

            release.set()
            created = rotation.result(timeout=10)

        lease = issuance_service.issue_role_token("dev")
        assert lease.token_id != created.token_id
