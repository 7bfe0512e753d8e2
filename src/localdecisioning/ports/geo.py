"""Port: IP address to geo resolution."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..models.delivery import Geo


@runtime_checkable
class GeoProvider(Protocol):
    """Resolve an IP address; None when the lookup fails."""

    def lookup(self, ip_address: str) -> Geo | None: ...

    def close(self) -> None: ...
