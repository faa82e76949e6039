"""
Artifactory secrets backend.

Issues, rotates and revokes JFrog Artifactory access tokens on behalf of a
secret-management host.
"""

from .backend import ArtifactoryBackend
from .config import AppConfig, get_config, reset_config, set_config
from .constants import PRODUCT_VERSION, Operation
from .schemas.request_schemas import Request, Response, Secret

__version__ = PRODUCT_VERSION

__all__ = [
    "ArtifactoryBackend",
    "AppConfig",
    "get_config",
    "reset_config",
    "set_config",
    "Operation",
    "Request",
    "Response",
    "Secret",
]
