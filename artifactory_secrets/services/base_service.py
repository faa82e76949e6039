"""
Base service implementation with common functionality for all services.

Services share one set of collaborators owned by the backend: the storage
repositories, the configuration lock, the host settings, a factory for
Artifactory clients and the usage reporter.
"""

from typing import Any, Callable, Dict, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..client.artifactory_client import ArtifactoryClient
from ..config import AppConfig
from ..constants import UsageFeature
from ..context.rw_lock import ReadWriteLock
from ..exceptions import validation_failed
from ..repositories.config_repository import AdminConfigRepository, UserTokenConfigRepository
from ..repositories.role_repository import RoleRepository
from ..schemas.config_schemas import AdminConfiguration
from ..storage.base import Storage
from ..utils.logger import get_logger
from ..utils.usage_reporter import UsageReporter

M = TypeVar("M", bound=BaseModel)

ClientFactory = Callable[[], ArtifactoryClient]


class BaseService:
    """Base service with common functionality for all services."""

    def __init__(
        self,
        storage: Storage,
        lock: ReadWriteLock,
        settings: AppConfig,
        client_factory: ClientFactory,
        usage_reporter: Optional[UsageReporter] = None,
    ):
        """
        Initialize the base service.

        Args:
            storage: Key/value storage supplied by the host
            lock: Reader/writer lock guarding the admin credential
            settings: Host configuration, including lease limits
            client_factory: Builds a fresh ArtifactoryClient per operation
            usage_reporter: Optional telemetry sink
        """
        self.admin_configs = AdminConfigRepository(storage)
        self.user_token_configs = UserTokenConfigRepository(storage)
        self.roles = RoleRepository(storage)
        self.lock = lock
        self.settings = settings
        self.client_factory = client_factory
        self.usage_reporter = usage_reporter
        self.logger = get_logger()

    def _report_usage(self, config: AdminConfiguration, feature: UsageFeature) -> None:
        if self.usage_reporter is not None:
            self.usage_reporter.report(config, feature)

    def _build(self, model_class: Type[M], data: Dict[str, Any]) -> M:
        """
        Validate ``data`` into ``model_class``.

        Raises:
            ValidationError: With the first offending field
        """
        try:
            return model_class.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first.get("loc", ())) or model_class.__name__
            value = first.get("input")
            # Error bodies are returned to callers; never echo whole records or credentials
            if isinstance(value, dict) or field == "access_token":
                value = "***"
            raise validation_failed(field, value, first.get("msg", str(e)), cause=e)
