"""
Request surface of the secrets backend.

``ArtifactoryBackend`` owns the state shared by every request (storage, the
configuration lock, the client factory, the usage reporter and the host
settings) and routes host requests to the services. Every failure is
returned as an error response built from ``BaseError.to_dict()``.
"""

import re
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple, Union

from .client.artifactory_client import ArtifactoryClient
from .config import AppConfig, get_config
from .constants import Operation
from .context.operation_context import OperationHandler
from .context.rw_lock import ReadWriteLock
from .exceptions import BaseError, ErrorCode, ServiceError, validation_failed
from .schemas.request_schemas import Request, Response, Secret
from .schemas.token_schemas import IssuedTokenLease
from .services.config_service import ConfigService
from .services.revocation_service import RevocationService
from .services.role_service import RoleService
from .services.rotation_service import RotationService
from .services.token_issuance_service import TokenIssuanceService
from .storage import Storage, create_storage
from .utils.logger import get_logger
from .utils.usage_reporter import UsageReporter

Handler = Callable[[Request, Dict[str, str]], Response]

NAME_PATTERN = r"(?P<name>[\w.-]+)"


def _optional_int(data: Dict[str, Any], field: str) -> Optional[int]:
    value = data.get(field)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise validation_failed(field, value, "must be an integer number of seconds", cause=e)


class ArtifactoryBackend:
    """Routes host requests to the credential lifecycle services."""

    def __init__(
        self,
        storage: Optional[Storage] = None,
        app_config: Optional[AppConfig] = None,
        client_factory: Optional[Callable[[], ArtifactoryClient]] = None,
        usage_reporter: Optional[UsageReporter] = None,
    ):
        self.app_config = app_config or get_config()
        self.storage = storage or create_storage(self.app_config.storage)
        self.lock = ReadWriteLock()
        self.client_factory = client_factory or (
            lambda: ArtifactoryClient(self.app_config.client)
        )
        features = self.app_config.features
        self.usage_reporter = usage_reporter or UsageReporter(
            self.client_factory,
            enabled=features.enable_usage_reporting,
            max_workers=features.usage_reporter_workers,
        )
        self.logger = get_logger()

        collaborators = (
            self.storage,
            self.lock,
            self.app_config,
            self.client_factory,
            self.usage_reporter,
        )
        self.config_service = ConfigService(*collaborators)
        self.role_service = RoleService(*collaborators)
        self.issuance_service = TokenIssuanceService(*collaborators)
        self.rotation_service = RotationService(*collaborators)
        self.revocation_service = RevocationService(*collaborators)

        self._routes: List[Tuple[Pattern[str], Dict[Operation, Handler]]] = [
            (
                re.compile(r"config/admin"),
                {
                    Operation.UPDATE: self._write_admin,
                    Operation.READ: self._read_admin,
                    Operation.DELETE: self._delete_admin,
                },
            ),
            (re.compile(r"config/rotate"), {Operation.UPDATE: self._rotate}),
            (
                re.compile(r"config/user_token"),
                {Operation.UPDATE: self._write_user_token, Operation.READ: self._read_user_token},
            ),
            (re.compile(r"roles/?"), {Operation.LIST: self._list_roles}),
            (
                re.compile(rf"roles/{NAME_PATTERN}"),
                {
                    Operation.UPDATE: self._write_role,
                    Operation.READ: self._read_role,
                    Operation.DELETE: self._delete_role,
                },
            ),
            (re.compile(rf"token/{NAME_PATTERN}"), {Operation.READ: self._issue_role_token}),
            (
                re.compile(r"user_token/(?P<name>[^/]+)"),
                {Operation.READ: self._issue_user_token, Operation.UPDATE: self._issue_user_token},
            ),
        ]

    def close(self) -> None:
        """Release background resources."""
        self.usage_reporter.shutdown(wait=False)

    # ==================== DISPATCH ====================

    def _route(self, request: Request) -> Tuple[Handler, Dict[str, str]]:
        path = request.path.strip("/")
        for pattern, handlers in self._routes:
            match = pattern.fullmatch(path)
            if match is None:
                continue
            handler = handlers.get(request.operation)
            if handler is None:
                raise ServiceError(
                    f"Unsupported operation {request.operation.value} on {request.path}",
                    error_code=ErrorCode.VALIDATION_FAILED,
                    status_code=405,
                    path=request.path,
                )
            return handler, match.groupdict()

        raise ServiceError(
            f"Unknown path: {request.path}",
            error_code=ErrorCode.NOT_FOUND,
            status_code=404,
            path=request.path,
        )

    def _run(self, name: str, call: Callable[[], Response], **context: Any) -> Response:
        try:
            with OperationHandler(self.logger).operation(name, **context) as op:
                response = call()
                op.add_context(status_code=response.status_code)
                return response
        except BaseError as e:
            return self._error_response(e)
        except Exception as e:
            wrapped = ServiceError(
                f"Unexpected error in {name}: {str(e)}",
                error_code=ErrorCode.INTERNAL_ERROR,
                operation=name,
                cause=e,
            )
            return self._error_response(wrapped)

    @staticmethod
    def _error_response(error: BaseError) -> Response:
        return Response(error=error.to_dict(), status_code=error.status_code)

    def handle_request(self, request: Union[Request, Dict[str, Any]]) -> Response:
        """
        Route a host request to its handler.

        Args:
            request: Request or its dict form

        Returns:
            Response with data, warnings and secret, or an error body
        """
        if not isinstance(request, Request):
            request = Request.model_validate(request)

        def dispatch() -> Response:
            handler, params = self._route(request)
            return handler(request, params)

        return self._run(
            f"{request.operation.value} {request.path}",
            dispatch,
            path=request.path,
            operation=request.operation.value,
        )

    # ==================== SECRETS ====================

    def revoke_secret(
        self, secret: Union[Secret, Dict[str, Any]], timeout: Optional[float] = None
    ) -> Response:
        """Revoke the token behind a lease when the host expires or revokes it."""
        if not isinstance(secret, Secret):
            secret = Secret.model_validate(secret)

        def call() -> Response:
            self.revocation_service.revoke(secret.internal_data, timeout=timeout)
            return Response()

        return self._run("revoke_secret", call)

    def renew_secret(
        self,
        secret: Union[Secret, Dict[str, Any]],
        increment: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Response:
        """Extend a lease without minting a new token."""
        if not isinstance(secret, Secret):
            secret = Secret.model_validate(secret)

        def call() -> Response:
            ttl = self.revocation_service.renew(secret.internal_data, increment, timeout=timeout)
            return Response(secret=secret.model_copy(update={"ttl": ttl}))

        return self._run("renew_secret", call)

    # ==================== HANDLERS ====================

    def _write_admin(self, request: Request, params: Dict[str, str]) -> Response:
        warnings = self.config_service.write_admin(request.data, timeout=request.timeout)
        return Response(warnings=warnings)

    def _read_admin(self, request: Request, params: Dict[str, str]) -> Response:
        data, warnings = self.config_service.read_admin(timeout=request.timeout)
        return Response(data=data, warnings=warnings)

    def _delete_admin(self, request: Request, params: Dict[str, str]) -> Response:
        self.config_service.delete_admin(timeout=request.timeout)
        return Response()

    def _rotate(self, request: Request, params: Dict[str, str]) -> Response:
        self.rotation_service.rotate(
            username=request.data.get("username"),
            description=request.data.get("description"),
            timeout=request.timeout,
        )
        return Response()

    def _write_user_token(self, request: Request, params: Dict[str, str]) -> Response:
        self.config_service.write_user_token(request.data, timeout=request.timeout)
        return Response()

    def _read_user_token(self, request: Request, params: Dict[str, str]) -> Response:
        data, warnings = self.config_service.read_user_token(timeout=request.timeout)
        return Response(data=data, warnings=warnings)

    def _list_roles(self, request: Request, params: Dict[str, str]) -> Response:
        return Response(data={"keys": self.role_service.list()})

    def _write_role(self, request: Request, params: Dict[str, str]) -> Response:
        self.role_service.put(params["name"], request.data)
        return Response()

    def _read_role(self, request: Request, params: Dict[str, str]) -> Response:
        return Response(data=self.role_service.get(params["name"]).to_response())

    def _delete_role(self, request: Request, params: Dict[str, str]) -> Response:
        self.role_service.delete(params["name"])
        return Response()

    def _issue_role_token(self, request: Request, params: Dict[str, str]) -> Response:
        lease = self.issuance_service.issue_role_token(
            params["name"],
            ttl=_optional_int(request.data, "ttl"),
            timeout=request.timeout,
        )
        return self._lease_response(lease)

    def _issue_user_token(self, request: Request, params: Dict[str, str]) -> Response:
        lease = self.issuance_service.issue_user_token(
            params["name"], request.data, timeout=request.timeout
        )
        return self._lease_response(lease)

    @staticmethod
    def _lease_response(lease: IssuedTokenLease) -> Response:
        return Response(
            data=lease.to_response(),
            secret=Secret(
                internal_data=lease.internal_data,
                ttl=lease.ttl,
                max_ttl=lease.max_ttl,
                renewable=lease.renewable,
            ),
        )
