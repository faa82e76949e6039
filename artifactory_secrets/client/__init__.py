"""Artifactory HTTP client."""

from .artifactory_client import ArtifactoryClient

__all__ = ["ArtifactoryClient"]
