"""httpx adapter for GeoProvider.

The geo endpoint answers a GET carrying the visitor IP in ``X-Forwarded-For``
with the resolved location in ``x-geo-*`` response headers.
"""

from __future__ import annotations

import logging

import httpx

from ..config.runtime import DecisioningSettings
from ..models.delivery import Geo
from .httpx_transport import build_timeout

_LOGGER = logging.getLogger(__name__)

HEADER_COUNTRY = "x-geo-country-code"
HEADER_REGION = "x-geo-region-code"
HEADER_CITY = "x-geo-city"
HEADER_LATITUDE = "x-geo-latitude"
HEADER_LONGITUDE = "x-geo-longitude"


def _float_header(headers: httpx.Headers, name: str) -> float | None:
    value = headers.get(name)
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class HttpxGeoProvider:
    """GeoProvider implementation; lookup failures resolve to None."""

    def __init__(
        self,
        settings: DecisioningSettings,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = settings.geo_lookup_url
        self._client = client or httpx.Client(timeout=build_timeout(settings))

    def lookup(self, ip_address: str) -> Geo | None:
        try:
            response = self._client.get(self._url, headers={"X-Forwarded-For": ip_address})
        except httpx.HTTPError as e:
            _LOGGER.warning("geo_lookup_failed", extra={"ip_address": ip_address, "error": str(e)})
            return None
        if response.status_code != 200:
            _LOGGER.warning(
                "geo_lookup_failed",
                extra={"ip_address": ip_address, "status": response.status_code},
            )
            return None
        headers = response.headers
        return Geo(
            ip_address=ip_address,
            country_code=headers.get(HEADER_COUNTRY),
            state_code=headers.get(HEADER_REGION),
            city=headers.get(HEADER_CITY),
            latitude=_float_header(headers, HEADER_LATITUDE),
            longitude=_float_header(headers, HEADER_LONGITUDE),
        )

    def close(self) -> None:
        self._client.close()
