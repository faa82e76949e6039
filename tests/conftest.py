"""
Shared test fixtures.

Real implementations throughout: in-memory and SQLite storage, the real
reader/writer lock and services. Artifactory itself is replaced by
FakeArtifactory, which mints genuine JWTs.
"""

import pytest

from artifactory_secrets.backend import ArtifactoryBackend
from artifactory_secrets.config import (
    AppConfig,
    BackendSettings,
    FeatureFlags,
    StorageConfig,
    reset_config,
    set_config,
)
from artifactory_secrets.context.rw_lock import ReadWriteLock
from artifactory_secrets.db.db_config import DatabaseConfig, DatabaseManager, init_db
from artifactory_secrets.repositories import AdminConfigRepository
from artifactory_secrets.schemas.config_schemas import AdminConfiguration
from artifactory_secrets.services import (
    ConfigService,
    RevocationService,
    RoleService,
    RotationService,
    TokenIssuanceService,
)
from artifactory_secrets.storage.inmemory import InMemoryStorage
from artifactory_secrets.utils.usage_reporter import UsageReporter
from tests.fixtures.fake_artifactory import FakeArtifactory
from tests.fixtures.failing_storage import FailingStorage

ARTIFACTORY_URL = "http://myserver.com:80/artifactory"

# Real Artifactory admin token: jti 59e39159-..., sub .../users/admin
SAMPLE_ADMIN_JWT = (
    "eyJ2ZXIiOiIyIiwidHlwIjoiSldUIiwiYWxnIjoiUlMyNTYiLCJraWQiOiJxdkhkX3lTNWlPQTlfQ3E5Z3BVSl9WdDBzYVhsTExhdWk2SzFrb291MEJzIn0"
    ".eyJleHQiOiJ7XCJyZXZvY2FibGVcIjpcInRydWVcIn0iLCJzdWIiOiJqZmFjQDAxZzVoZWs2a2IyOTUyMHJiejcxdjkxY3c5XC91c2Vyc1wvYWRtaW4iLCJzY3AiOiJhcHBsaWVkLXBlcm1pc3Npb25zXC9hZG1pbiIsImF1ZCI6IipAKiIsImlzcyI6ImpmYWNAMDFnNWhlazZrYjI5NTIwcmJ6NzF2OTFjdzkiLCJleHAiOjE2ODY3ODA4MjgsImlhdCI6MTY1NTI0NDgyOCwianRpIjoiNTllMzkxNTktMTllYi00NjNkLTk1M2QtMWQ2YmFmNTY3ZGI2In0"
    ".IaWDbYM-NkDA9KVkCHlYMJAOD0CvOH3Hq4t2P3YYm8B6G1MddH46VPKGPySr4st5KmMInfW-lmg6IfXjVarlkJVT8AkiaTBOR7EJFC5kqZ80OHOtYKusIHZx_7aEuDC6f9mijwuxz5ERd7WmYnJn3hOwLd7_94hScX9gWfmYcT3xZNjTS48BmXOqPyXu-XtfZ9K-X9zQNtHv6j9qFNtwwTfv9GN8wnwTJ-e4xpginFQh-9YETaWUVtvOsm2-VtM5vDsszYtg8FM-Bz3JFNqJTFlvDs75ATmHEjwoCIa7Vzg_GqAgFFRrW3SYwW3GpPyk8vJT9xLmEBBwVUVl2Ngjdw"
)
SAMPLE_ADMIN_TOKEN_ID = "59e39159-19eb-463d-953d-1d6baf567db6"


# ==================== CONFIGURATION ====================


@pytest.fixture
def app_config() -> AppConfig:
    """Deterministic host configuration, independent of the environment."""
    return AppConfig(
        backend=BackendSettings(default_lease_ttl=3600, max_lease_ttl=86400),
        storage=StorageConfig(backend="memory"),
        features=FeatureFlags(enable_usage_reporting=True, usage_reporter_workers=1),
    )


@pytest.fixture(autouse=True)
def global_config(app_config: AppConfig):
    """Install the test configuration globally and reset it afterwards."""
    set_config(app_config)
    yield app_config
    reset_config()


# ==================== STORAGE ====================


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def failing_storage() -> FailingStorage:
    return FailingStorage()


@pytest.fixture
def db_manager():
    """SQLite in-memory database with all tables, discarded after the test."""
    manager = DatabaseManager(DatabaseConfig())
    init_db(manager)
    yield manager
    manager.close()


# ==================== ARTIFACTORY ====================


@pytest.fixture
def fake_artifactory() -> FakeArtifactory:
    return FakeArtifactory()


@pytest.fixture
def admin_token(fake_artifactory: FakeArtifactory) -> str:
    """A live admin token known to the fake."""
    return fake_artifactory.mint(username="admin", scope="applied-permissions/admin").access_token


@pytest.fixture
def admin_config(admin_token: str) -> AdminConfiguration:
    return AdminConfiguration(access_token=admin_token, url=ARTIFACTORY_URL)


@pytest.fixture
def usage_reporter(fake_artifactory: FakeArtifactory):
    reporter = UsageReporter(lambda: fake_artifactory, enabled=True, max_workers=1)
    yield reporter
    reporter.shutdown(wait=True)


# ==================== SERVICES ====================


@pytest.fixture
def lock() -> ReadWriteLock:
    return ReadWriteLock()


@pytest.fixture
def service_args(storage, lock, app_config, fake_artifactory, usage_reporter):
    """Positional collaborators shared by every service."""
    return (storage, lock, app_config, lambda: fake_artifactory, usage_reporter)


@pytest.fixture
def configured_storage(storage: InMemoryStorage, admin_config: AdminConfiguration):
    """Storage that already holds an admin record."""
    AdminConfigRepository(storage).put(admin_config)
    return storage


@pytest.fixture
def config_service(service_args) -> ConfigService:
    return ConfigService(*service_args)


@pytest.fixture
def role_service(service_args) -> RoleService:
    return RoleService(*service_args)


@pytest.fixture
def issuance_service(service_args) -> TokenIssuanceService:
    return TokenIssuanceService(*service_args)


@pytest.fixture
def rotation_service(service_args) -> RotationService:
    return RotationService(*service_args)


@pytest.fixture
def revocation_service(service_args) -> RevocationService:
    return RevocationService(*service_args)


# ==================== BACKEND ====================


@pytest.fixture
def backend(storage, app_config, fake_artifactory, usage_reporter):
    backend = ArtifactoryBackend(
        storage=storage,
        app_config=app_config,
        client_factory=lambda: fake_artifactory,
        usage_reporter=usage_reporter,
    )
    yield backend
    backend.close()


@pytest.fixture
def configured_backend(backend: ArtifactoryBackend, admin_token: str) -> ArtifactoryBackend:
    response = backend.handle_request(
        {
            "operation": "update",
            "path": "config/admin",
            "data": {"url": ARTIFACTORY_URL, "access_token": admin_token},
        }
    )
    assert not response.is_error
    return backend
