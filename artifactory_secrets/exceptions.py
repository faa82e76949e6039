"""
Exception hierarchy with error codes, context, and correlation support.

Every error carries a standardized code, an HTTP-like status used by the request
router to build error responses, and free-form context. Errors log themselves on
construction so that failures deep in the credential lifecycle are always
recorded, even when a caller later decides to swallow them.
"""

import threading
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

_thread_local = threading.local()


class ErrorCode(str, Enum):
    """Standardized error codes for responses."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONNECTION_ERROR = "1002"
    CONFIGURATION_ERROR = "1003"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"

    # Resource errors (3xxx)
    NOT_FOUND = "3000"
    LOCKED = "3003"
    EXPIRED = "3004"

    # Business logic errors (4xxx)
    PERMISSION_DENIED = "4003"
    PRECONDITION_FAILED = "4004"

    # External service errors (5xxx)
    EXTERNAL_API_ERROR = "5002"
    DOWNSTREAM_ERROR = "5004"


class BaseError(Exception):
    """Base exception with context, error codes, logging, and error chaining."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Initialize base error with rich context.

        Args:
            message: Human-readable error message
            error_code: Standardized error code from ErrorCode enum
            status_code: HTTP-like status code for responses
            cause: Original exception that caused this error
            **context: Additional context information
        """
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_id = str(uuid.uuid4())
        self.context = context

        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id

        self.context["error_id"] = self.error_id

        if cause:
            self.context["cause"] = {"type": type(cause).__name__, "message": str(cause)}
            # Tracebacks show the underlying failure as the direct cause
            self.__cause__ = cause

        self._log_error()

        super().__init__(message)

    def _log_error(self) -> None:
        """Log error with appropriate level based on status code."""
        # Imported lazily, the logger module reads config which imports constants only
        from .utils.logger import get_logger

        logger = get_logger()

        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "timestamp": self.timestamp,
        }
        if "correlation_id" in self.context:
            log_data["correlation_id"] = self.context["correlation_id"]
        if "cause" in self.context:
            log_data["cause_type"] = self.context["cause"]["type"]
            log_data["cause_message"] = self.context["cause"]["message"]

        if self.status_code >= 500:
            logger.error(f"Error {self.error_code.value}: {self.message}", extra=log_data)
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.error_code.value}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.error_code.value}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dict for error responses.

        The underlying cause is logged but never returned to callers.

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        result: Dict[str, Any] = {
            "error": {
                "id": self.error_id,
                "code": self.error_code.value,
                "message": self.message,
                "timestamp": self.timestamp,
                "context": {
                    k: v
                    for k, v in self.context.items()
                    if k not in ["cause", "error_id", "correlation_id"]
                },
            }
        }

        if "correlation_id" in self.context:
            result["error"]["correlation_id"] = self.context["correlation_id"]

        return result

    def add_context(self, **kwargs: Any) -> "BaseError":
        """
        Add additional context to the error (fluent interface).

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self


# Layer-specific base exceptions
class RepositoryError(BaseError):
    """Storage layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context,
    ):
        super().__init__(message, error_code, status_code, cause, **context)


class ServiceError(BaseError):
    """Service layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        status_code: int = 500,
        **context,
    ):
        if operation:
            context["operation"] = operation
        super().__init__(message, error_code, status_code, cause, **context)


class ValidationError(BaseError):
    """Validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


class ExternalServiceError(BaseError):
    """Artifactory integration errors."""

    def __init__(
        self,
        message: str,
        service_name: str = "artifactory",
        error_code: ErrorCode = ErrorCode.EXTERNAL_API_ERROR,
        cause: Optional[Exception] = None,
        status_code: int = 502,
        **context,
    ):
        context["service_name"] = service_name
        super().__init__(message, error_code, status_code, cause, **context)


# ==================== CONFIGURATION & LOOKUP ====================


class NotConfiguredError(BaseError):
    """Raised when no admin credential has been configured yet."""

    def __init__(self, message: str = "backend not configured", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.CONFIGURATION_ERROR, status_code=400, **kwargs
        )


class RoleNotFoundError(BaseError):
    """Raised when a named role is referenced but absent."""

    def __init__(self, role_name: str, **kwargs):
        super().__init__(
            message=f"Role not found: {role_name}",
            error_code=ErrorCode.NOT_FOUND,
            status_code=404,
            role=role_name,
            **kwargs,
        )


class IntrospectionFailedError(BaseError):
    """Raised when a bearer value cannot be decoded into token claims."""

    def __init__(self, message: str = "Unable to parse access token", **kwargs):
        super().__init__(
            message=message, error_code=ErrorCode.INVALID_FORMAT, status_code=400, **kwargs
        )


class PersistenceFailedError(RepositoryError):
    """Raised when a storage write fails; always fatal to the operation."""

    def __init__(self, message: str = "Failed to persist record", **kwargs):
        super().__init__(message, error_code=ErrorCode.DATABASE_ERROR, status_code=500, **kwargs)


class LockTimeoutError(BaseError):
    """Raised when the configuration lock cannot be acquired before the deadline."""

    def __init__(self, message: str = "Timed out waiting for configuration lock", **kwargs):
        super().__init__(message=message, error_code=ErrorCode.LOCKED, status_code=503, **kwargs)


# ==================== UPSTREAM ====================


class UpstreamRejectedError(ExternalServiceError):
    """Artifactory refused the request."""

    def __init__(self, message: str, upstream_status: Optional[int] = None, **kwargs):
        if upstream_status is not None:
            kwargs["upstream_status"] = upstream_status
        kwargs.setdefault("error_code", ErrorCode.EXTERNAL_API_ERROR)
        super().__init__(message, **kwargs)


class UpstreamUnauthorizedError(UpstreamRejectedError):
    """Artifactory rejected the admin credential."""

    def __init__(self, message: str = "Artifactory rejected the admin token", **kwargs):
        super().__init__(message, error_code=ErrorCode.PERMISSION_DENIED, **kwargs)


class UpstreamUnreachableError(ExternalServiceError):
    """Network or transport failure talking to Artifactory."""

    def __init__(self, message: str = "Artifactory is unreachable", **kwargs):
        super().__init__(
            message, error_code=ErrorCode.CONNECTION_ERROR, status_code=503, **kwargs
        )


class UnsupportedVersionError(ExternalServiceError):
    """Artifactory version cannot issue scoped tokens."""

    def __init__(self, version: str, **kwargs):
        super().__init__(
            f"Unsupported Artifactory version: {version}",
            error_code=ErrorCode.PRECONDITION_FAILED,
            version=version,
            **kwargs,
        )


class TokenNotFoundError(ExternalServiceError):
    """The token to revoke is already gone upstream."""

    def __init__(self, message: str = "Token not found", **kwargs):
        super().__init__(message, error_code=ErrorCode.NOT_FOUND, status_code=404, **kwargs)


class RevocationIncompleteError(ExternalServiceError):
    """
    Rotation succeeded but the predecessor credential could not be revoked.

    The new admin credential is already persisted and in effect; the stale one
    must be revoked manually.
    """

    def __init__(self, stale_token_id: Optional[str], cause: Optional[Exception] = None, **kwargs):
        super().__init__(
            "Admin token rotated and the new token is in effect, but revoking the "
            f"previous token failed; revoke token_id={stale_token_id} manually",
            error_code=ErrorCode.DOWNSTREAM_ERROR,
            cause=cause,
            stale_token_id=stale_token_id,
            **kwargs,
        )


# Factory functions for common error patterns
def validation_failed(
    field: str, value: Any, reason: str, cause: Optional[Exception] = None
) -> ValidationError:
    """
    Factory for validation errors.

    Args:
        field: Field that failed validation
        value: The invalid value
        reason: Why validation failed
        cause: Original exception if any

    Returns:
        Configured ValidationError instance
    """
    return ValidationError(
        f"Validation failed for {field}: {reason}",
        field=field,
        error_code=ErrorCode.VALIDATION_FAILED,
        cause=cause,
        value=str(value),
        reason=reason,
    )


# Correlation ID management
def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current thread."""
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    """Get the current thread's correlation ID."""
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    """Clear the current thread's correlation ID."""
    if hasattr(_thread_local, "correlation_id"):
        delattr(_thread_local, "correlation_id")
