"""
Unit tests for TokenIssuanceService and TTL resolution.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from artifactory_secrets.config import BackendSettings
from artifactory_secrets.exceptions import (
    NotConfiguredError,
    RoleNotFoundError,
    UpstreamRejectedError,
    ValidationError,
)
from artifactory_secrets.services.token_issuance_service import resolve_ttl
from artifactory_secrets.utils.token_utils import introspect

BACKEND = BackendSettings(default_lease_ttl=3600, max_lease_ttl=86400)


class TestResolveTtl:
    """Test lease TTL resolution."""

    def test_unset_defaults_fall_back_to_backend(self):
        assert resolve_ttl(None, 0, 0, BACKEND) == (3600, 86400)

    def test_role_default_used(self):
        assert resolve_ttl(None, 600, 0, BACKEND) == (600, 86400)

    def test_requested_wins_over_default(self):
        assert resolve_ttl(120, 600, 0, BACKEND) == (120, 86400)

    def test_over_long_request_clamps_to_role_max(self):
        assert resolve_ttl(10_000, 600, 1800, BACKEND) == (1800, 1800)

    def test_role_max_above_backend_is_capped(self):
        assert resolve_ttl(None, 0, 500_000, BACKEND) == (3600, 86400)

    def test_backend_default_clamped_by_role_max(self):
        assert resolve_ttl(None, 0, 60, BACKEND) == (60, 60)

    @pytest.mark.parametrize("requested", [None, 0, 1, 59, 60, 61, 3600, 86400, 10**9])
    @pytest.mark.parametrize("max_ttl", [0, 60, 7200, 10**7])
    def test_never_above_max(self, requested, max_ttl):
        """Test that no combination yields a TTL above its ceiling."""
        ttl, ceiling = resolve_ttl(requested, 0, max_ttl, BACKEND)

        assert ttl <= ceiling <= BACKEND.max_lease_ttl
        if max_ttl:
            assert ceiling <= max_ttl

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            resolve_ttl(-1, 0, 0, BACKEND)


class TestIssueRoleToken:
    """Test role token issuance."""

    def test_not_configured(self, issuance_service, role_service, fake_artifactory):
        role_service.put("dev", {"scope": "applied-permissions/groups:dev"})

        with pytest.raises(NotConfiguredError):
            issuance_service.issue_role_token("dev")

        assert fake_artifactory.created == []

    def test_missing_role(self, configured_storage, issuance_service, fake_artifactory):
        with pytest.raises(RoleNotFoundError) as exc_info:
            issuance_service.issue_role_token("ghost")

        assert exc_info.value.status_code == 404
        assert fake_artifactory.created == []

    def test_issue(self, configured_storage, issuance_service, role_service, fake_artifactory):
        """Test the request sent upstream and the lease returned."""
        role_service.put(
            "dev",
            {
                "scope": "applied-permissions/groups:dev",
                "audience": "jfrt@*",
                "default_ttl": 600,
                "max_ttl": 1800,
                "default_description": "dev token",
            },
        )

        lease = issuance_service.issue_role_token("dev")

        request = fake_artifactory.created[-1]
        assert request.username == "role-dev"
        assert request.scope == "applied-permissions/groups:dev"
        assert request.audience == "jfrt@*"
        assert request.expires_in == 1800
        assert request.description == "dev token"
        assert lease.ttl == 600
        assert lease.max_ttl == 1800
        assert lease.role == "dev"
        assert introspect(lease.access_token).scope == "applied-permissions/groups:dev"
        assert lease.internal_data["token_id"] == lease.token_id

    def test_explicit_username(self, configured_storage, issuance_service, role_service, fake_artifactory):
        role_service.put("ci", {"scope": "api:*", "username": "ci-bot"})

        lease = issuance_service.issue_role_token("ci")

        assert lease.username == "ci-bot"
        assert fake_artifactory.created[-1].username == "ci-bot"

    def test_unset_ttls_use_backend_defaults(self, configured_storage, issuance_service, role_service):
        role_service.put("dev", {"scope": "api:*"})

        lease = issuance_service.issue_role_token("dev")

        assert lease.ttl == 3600
        assert lease.max_ttl == 86400

    def test_over_long_request_clamped(self, configured_storage, issuance_service, role_service):
        role_service.put("dev", {"scope": "api:*", "max_ttl": 900})

        lease = issuance_service.issue_role_token("dev", ttl=999_999)

        assert lease.ttl == 900

    def test_upstream_rejection(self, configured_storage, issuance_service, role_service, fake_artifactory):
        role_service.put("dev", {"scope": "api:*"})
        fake_artifactory.create_error = UpstreamRejectedError("no", upstream_status=400)

        with pytest.raises(UpstreamRejectedError):
            issuance_service.issue_role_token("dev")

    def test_concurrent_issuance_runs_in_parallel(
        self, configured_storage, issuance_service, role_service, fake_artifactory
    ):
        """Test that issuance holds the lock shared: both calls reach Artifactory at once."""
        role_service.put("dev", {"scope": "api:*"})
        barrier = threading.Barrier(2, timeout=5)
        fake_artifactory.create_hook = lambda _request: barrier.wait()

        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = [executor.submit(issuance_service.issue_role_token, "dev") for _ in range(2)]
            leases = [future.result(timeout=10) for future in futures]

        assert len({lease.token_id for lease in leases}) == 2


class TestIssueUserToken:
    """Test ad hoc user tokens."""

    def test_defaults(self, configured_storage, issuance_service, fake_artifactory):
        lease = issuance_service.issue_user_token("alice")

        request = fake_artifactory.created[-1]
        assert request.username == "alice"
        assert request.scope == "applied-permissions/user"
        assert lease.role is None
        assert lease.ttl == 3600

    def test_user_token_config_applies(self, configured_storage, issuance_service, config_service, fake_artifactory):
        config_service.write_user_token(
            {"audience": "jfrt@*", "default_ttl": 300, "max_ttl": 900, "default_description": "u"}
        )

        lease = issuance_service.issue_user_token("alice")

        request = fake_artifactory.created[-1]
        assert request.audience == "jfrt@*"
        assert request.description == "u"
        assert request.expires_in == 900
        assert lease.ttl == 300

    def test_overrides(self, configured_storage, issuance_service, fake_artifactory):
        lease = issuance_service.issue_user_token(
            "alice",
            {"scope": "applied-permissions/groups:ops", "ttl": 120, "description": "ad hoc"},
        )

        request = fake_artifactory.created[-1]
        assert request.scope == "applied-permissions/groups:ops"
        assert request.description == "ad hoc"
        assert lease.ttl == 120

    def test_max_ttl_override_cannot_raise_ceiling(self, configured_storage, issuance_service, config_service):
        config_service.write_user_token({"max_ttl": 600})

        lease = issuance_service.issue_user_token("alice", {"max_ttl": 7200, "ttl": 7200})

        assert lease.max_ttl == 600
        assert lease.ttl == 600

    def test_max_ttl_override_can_lower_ceiling(self, configured_storage, issuance_service):
        lease = issuance_service.issue_user_token("alice", {"max_ttl": 60})

        assert lease.max_ttl == 60
        assert lease.ttl == 60

    def test_empty_username(self, configured_storage, issuance_service):
        with pytest.raises(ValidationError):
            issuance_service.issue_user_token("  ")

    def test_negative_ttl(self, configured_storage, issuance_service):
        with pytest.raises(ValidationError):
            issuance_service.issue_user_token("alice", {"ttl": -5})
