"""httpx adapter for ArtifactTransport."""

from __future__ import annotations

import httpx

from ..config.runtime import DecisioningSettings
from ..errors import ArtifactError
from ..ports.artifact_transport import ArtifactResponse


def build_timeout(settings: DecisioningSettings) -> httpx.Timeout:
    return httpx.Timeout(settings.read_timeout_seconds, connect=settings.connect_timeout_seconds)


class HttpxArtifactTransport:
    """ArtifactTransport implementation backed by a synchronous httpx client."""

    def __init__(
        self,
        settings: DecisioningSettings,
        client: httpx.Client | None = None,
    ) -> None:
        self._client = client or httpx.Client(timeout=build_timeout(settings), follow_redirects=True)

    def get(self, url: str, headers: dict[str, str]) -> ArtifactResponse:
        try:
            response = self._client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise ArtifactError(
                "Failed to fetch local-decisioning rule set",
                details={"url": url, "error": str(e)},
            ) from e
        return ArtifactResponse(
            status=response.status_code,
            reason=response.reason_phrase,
            headers={k.lower(): v for k, v in response.headers.items()},
            body=response.content,
        )

    def close(self) -> None:
        self._client.close()
