"""
HTTP client for the Artifactory token and system APIs.

Every call is a single attempt. Transport failures become
UpstreamUnreachableError, refusals become UpstreamRejectedError (or one of its
more specific subclasses), and retry policy is left to the caller.
"""

from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

import requests

from ..config import ClientConfig
from ..constants import PRODUCT_NAME, PRODUCT_VERSION, Timeouts, Versions
from ..exceptions import (
    TokenNotFoundError,
    UnsupportedVersionError,
    UpstreamRejectedError,
    UpstreamUnauthorizedError,
    UpstreamUnreachableError,
)
from ..schemas.config_schemas import AdminConfiguration
from ..schemas.token_schemas import CreatedToken, ServiceVersion, TokenRequest, parse_version
from ..utils.logger import get_logger
from ..utils.token_utils import introspect

ACCESS_TOKENS_PATH = "/access/api/v1/tokens"


class ArtifactoryClient:
    """
    Client for the Artifactory endpoints the backend depends on.

    The admin configuration is passed to each call rather than held by the
    client, so a rotated credential is picked up on the very next request.
    """

    def __init__(
        self,
        client_config: Optional[ClientConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.client_config = client_config or ClientConfig()
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.logger = get_logger()
        self._version: Optional[ServiceVersion] = None

    def close(self) -> None:
        """Close the HTTP session if this client opened it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "ArtifactoryClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ==================== HTTP PLUMBING ====================

    def _get_headers(self, config: AdminConfiguration) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {config.access_token}",
            "Accept": "application/json",
            "User-Agent": self.client_config.user_agent,
        }

    def _access_api_url(self, config: AdminConfiguration, suffix: str = "") -> str:
        # The Access API lives at the host root, not under the /artifactory context
        parts = urlsplit(config.url)
        return urlunsplit((parts.scheme, parts.netloc, ACCESS_TOKENS_PATH + suffix, "", ""))

    def _request(
        self,
        method: str,
        url: str,
        config: AdminConfiguration,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> requests.Response:
        try:
            return self.session.request(
                method,
                url,
                headers=self._get_headers(config),
                timeout=timeout or self.client_config.timeout_seconds,
                verify=not config.bypass_artifactory_tls_verification,
                **kwargs,
            )
        except requests.RequestException as e:
            raise UpstreamUnreachableError(
                f"Request to Artifactory failed: {e}", cause=e, method=method, url=url
            )

    def _raise_for_status(self, response: requests.Response, action: str) -> None:
        if response.ok:
            return

        detail = (response.text or "").strip()[:500]
        if response.status_code in (401, 403):
            raise UpstreamUnauthorizedError(
                f"Artifactory refused to {action}: HTTP {response.status_code}",
                upstream_status=response.status_code,
                detail=detail,
            )
        raise UpstreamRejectedError(
            f"Artifactory refused to {action}: HTTP {response.status_code}",
            upstream_status=response.status_code,
            detail=detail,
        )

    # ==================== OPERATIONS ====================

    def probe_capabilities(
        self, config: AdminConfiguration, timeout: Optional[float] = None
    ) -> ServiceVersion:
        """
        Determine the Artifactory version and whether it can issue scoped tokens.

        Args:
            config: Admin configuration to probe with
            timeout: Optional per-call deadline in seconds

        Returns:
            ServiceVersion deciding which token API later calls use

        Raises:
            UpstreamUnreachableError: Network failure
            UpstreamUnauthorizedError: Admin token rejected
            UnsupportedVersionError: Version too old or unparseable
        """
        response = self._request("GET", f"{config.url}/api/system/version", config, timeout)
        self._raise_for_status(response, "report its version")

        try:
            payload = response.json()
        except ValueError as e:
            raise UnsupportedVersionError("unknown", cause=e)

        version = ServiceVersion(
            version=str(payload.get("version", "")), revision=payload.get("revision")
        )
        if parse_version(version.version) is None or not version.at_least(
            Versions.MINIMUM_SUPPORTED
        ):
            raise UnsupportedVersionError(version.version or "unknown")

        self._version = version
        self.logger.debug(
            "Artifactory version probed",
            extra={"version": version.version, "access_api": version.uses_access_api},
        )
        return version

    def _require_version(
        self, config: AdminConfiguration, timeout: Optional[float]
    ) -> ServiceVersion:
        if self._version is None:
            return self.probe_capabilities(config, timeout)
        return self._version

    def create_token(
        self,
        config: AdminConfiguration,
        token_request: TokenRequest,
        timeout: Optional[float] = None,
    ) -> CreatedToken:
        """
        Issue a new token scoped per ``token_request``.

        Raises:
            UpstreamRejectedError: Artifactory refused the request
            UpstreamUnreachableError: Network failure
        """
        version = self._require_version(config, timeout)
        if version.uses_access_api:
            url = self._access_api_url(config)
        else:
            url = f"{config.url}/api/security/token"

        response = self._request("POST", url, config, timeout, data=token_request.to_form())
        self._raise_for_status(response, "create token")

        try:
            created = CreatedToken.model_validate(response.json())
        except ValueError as e:
            raise UpstreamRejectedError(
                "Artifactory returned an unreadable token response",
                upstream_status=response.status_code,
                cause=e,
            )

        if not created.token_id:
            # Legacy responses omit the id; it is the jti claim of the token itself
            created.token_id = introspect(created.access_token).token_id

        self.logger.info(
            "Token created",
            extra={
                "token_id": created.token_id,
                "username": token_request.username,
                "scope": token_request.scope,
            },
        )
        return created

    def revoke_token(
        self,
        config: AdminConfiguration,
        access_token: str,
        token_id: Optional[str],
        timeout: Optional[float] = None,
    ) -> None:
        """
        Revoke a token.

        Raises:
            TokenNotFoundError: The token is already gone upstream
            UpstreamRejectedError: Artifactory refused the request
            UpstreamUnreachableError: Network failure
        """
        version = self._require_version(config, timeout)
        if version.uses_access_api:
            if not token_id:
                token_id = introspect(access_token).token_id
            response = self._request(
                "DELETE", self._access_api_url(config, f"/{token_id}"), config, timeout
            )
        else:
            response = self._request(
                "POST",
                f"{config.url}/api/security/token/revoke",
                config,
                timeout,
                data={"token": access_token},
            )

        if response.status_code == 404:
            raise TokenNotFoundError(f"Token not found: {token_id}", token_id=token_id)
        self._raise_for_status(response, "revoke token")

        self.logger.info("Token revoked", extra={"token_id": token_id})

    def send_usage(self, config: AdminConfiguration, feature: str) -> None:
        """Report a feature use. Callers dispatch this off the request path."""
        body = {
            "productId": f"{PRODUCT_NAME}/{PRODUCT_VERSION}",
            "features": [{"featureId": feature}],
        }
        response = self._request(
            "POST", f"{config.url}/api/system/usage", config, Timeouts.USAGE_REPORT, json=body
        )
        self.logger.debug(
            "Usage reported", extra={"feature": feature, "status": response.status_code}
        )
