"""Port: HTTP transport used to fetch the rule-set artifact."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class ArtifactResponse:
    """Status, headers (lower-cased names) and raw body of one artifact GET."""

    status: int
    reason: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def etag(self) -> str | None:
        return self.headers.get("etag")

    def json(self) -> Any:
        """Decode the body; raises ValueError on malformed JSON."""
        return json.loads(self.body.decode("utf-8")) if self.body else None


@runtime_checkable
class ArtifactTransport(Protocol):
    """GET ``url`` with ``headers``. Raises ArtifactError on transport failure."""

    def get(self, url: str, headers: dict[str, str]) -> ArtifactResponse: ...

    def close(self) -> None: ...
