"""
Constants and enums for the Artifactory secrets backend.

Storage keys, request paths, defaults and environment variable names live here
so that the services, router and tests agree on them.
"""

from enum import Enum

PRODUCT_NAME = "artifactory-secrets"
PRODUCT_VERSION = "1.0.0"


class StorageKey(str, Enum):
    """Keys of the persisted records."""

    ADMIN = "config/admin"
    USER_TOKEN = "config/user_token"
    ROLE_PREFIX = "roles/"


class Operation(str, Enum):
    """Request operations understood by the backend router."""

    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    LOG_LEVEL = "LOG_LEVEL"
    DATABASE_URL = "DATABASE_URL"
    STORAGE_BACKEND = "ARTIFACTORY_SECRETS_STORAGE"
    DEFAULT_LEASE_TTL = "ARTIFACTORY_SECRETS_DEFAULT_LEASE_TTL"
    MAX_LEASE_TTL = "ARTIFACTORY_SECRETS_MAX_LEASE_TTL"
    CLIENT_TIMEOUT = "ARTIFACTORY_SECRETS_CLIENT_TIMEOUT"
    USAGE_REPORTING = "ARTIFACTORY_SECRETS_USAGE_REPORTING"


class Defaults:
    """Fallback values used when neither the caller nor a record supplies one."""

    GRANT_TYPE = "client_credentials"
    ROTATED_ADMIN_USERNAME = "admin-vault-secrets-artifactory"
    ROTATED_ADMIN_DESCRIPTION = "Rotated Admin token for artifactory-secrets plugin in Vault"
    USER_TOKEN_SCOPE = "applied-permissions/user"
    ROLE_USERNAME_PREFIX = "role-"
    DEFAULT_LEASE_TTL_SECONDS = 3600
    MAX_LEASE_TTL_SECONDS = 86400


class Versions:
    """Artifactory version thresholds."""

    # Oldest release with the /api/security/token API
    MINIMUM_SUPPORTED = "5.0.0"
    # Tokens created through /access/api/v1/tokens and revoked by id
    ACCESS_API = "7.21.1"


class Timeouts:
    """Timeout values in seconds."""

    EXTERNAL_API_CALL = 30
    USAGE_REPORT = 5


class UsageFeature(str, Enum):
    """Feature ids reported to Artifactory's usage endpoint."""

    CONFIG_ADMIN_WRITE = "pathConfigAdminWrite"
    CONFIG_ADMIN_READ = "pathConfigAdminRead"
    CONFIG_ROTATE_WRITE = "pathConfigRotateWrite"
    CONFIG_USER_TOKEN_UPDATE = "pathConfigUserTokenUpdate"
    CONFIG_USER_TOKEN_READ = "pathConfigUserTokenRead"
    TOKEN_CREATE = "pathTokenCreatePerform"
    USER_TOKEN_CREATE = "pathUserTokenCreatePerform"
    SECRET_REVOKE = "secretAccessTokenRevoke"
    SECRET_RENEW = "secretAccessTokenRenew"
