"""Concrete adapters for the decisioning ports."""

from .httpx_geo import HttpxGeoProvider
from .httpx_transport import HttpxArtifactTransport

__all__ = ["HttpxArtifactTransport", "HttpxGeoProvider"]
