"""Context collators: flatten a request into the mapping rule conditions read.

Every collator is a pure function of the request, the request item and (for
time) the clock, so the result can be rebuilt for every rule evaluation.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

from ..models.delivery import Address, DeliveryRequest, Geo
from .details import RequestDetails

# (name, pattern) pairs; first match wins, order matters (Edge/Opera UAs also say Chrome)
_BROWSER_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("edge", re.compile(r"(?:Edg|Edge|EdgA|EdgiOS)/([\d.]+)")),
    ("opera", re.compile(r"(?:OPR|Opera)[/ ]([\d.]+)")),
    ("chrome", re.compile(r"(?:Chrome|CriOS)/([\d.]+)")),
    ("firefox", re.compile(r"(?:Firefox|FxiOS)/([\d.]+)")),
    ("ie", re.compile(r"(?:MSIE |Trident/.*rv:)([\d.]+)")),
    ("safari", re.compile(r"Version/([\d.]+).*Safari/")),
)

_PLATFORM_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("windows", re.compile(r"Windows")),
    ("ios", re.compile(r"iPhone|iPad|iPod")),
    ("android", re.compile(r"Android")),
    ("mac", re.compile(r"Macintosh|Mac OS X")),
    ("linux", re.compile(r"Linux|X11")),
)

UNKNOWN = "unknown"


def _with_lowercase(values: dict[str, Any]) -> dict[str, Any]:
    """Add a ``<key>_lc`` companion for every string value."""
    result: dict[str, Any] = {}
    for key, value in values.items():
        result[key] = value
        if isinstance(value, str):
            result[f"{key}_lc"] = value.lower()
    return result


def collate_time(now: datetime | None = None) -> dict[str, Any]:
    """current_timestamp (epoch ms), current_day ('1'..'7', Monday=1) and current_time ('HHMM'), UTC."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return {
        "current_timestamp": int(now.timestamp() * 1000),
        "current_day": str(now.isoweekday()),
        "current_time": now.strftime("%H%M"),
    }


def parse_user_agent(user_agent: str | None) -> tuple[str, str | None, str]:
    """Return (browserType, browserVersion, platform) for a user-agent string."""
    if not user_agent:
        return UNKNOWN, None, UNKNOWN
    browser, version = UNKNOWN, None
    for name, pattern in _BROWSER_PATTERNS:
        match = pattern.search(user_agent)
        if match:
            browser, version = name, match.group(1)
            break
    platform = UNKNOWN
    for name, pattern in _PLATFORM_PATTERNS:
        if pattern.search(user_agent):
            platform = name
            break
    return browser, version, platform


def collate_user(request: DeliveryRequest, details: RequestDetails) -> dict[str, Any]:
    context = request.context
    browser_type, browser_version, platform = parse_user_agent(context.user_agent)
    user: dict[str, Any] = {
        "browserType": browser_type,
        "platform": platform,
    }
    if browser_version:
        user["browserVersion"] = browser_version
    if context.browser is not None and context.browser.language:
        user["locale"] = context.browser.language
    return user


_SECOND_LEVEL_LABELS = frozenset({"ac", "co", "com", "edu", "gov", "ltd", "me", "net", "org"})


def _split_host(host: str) -> tuple[str, str]:
    """Return (subdomain, topLevelDomain) for a host name.

    The top-level domain is the last label, or the last two when they form a
    country-code second level such as ``co.uk`` or ``com.au``. The subdomain is
    every label left of the registrable domain, with a lone ``www`` dropped.
    """
    parts = [p for p in host.split(".") if p]
    if len(parts) < 2:
        return "", ""
    tld_size = 1
    if len(parts) >= 3 and len(parts[-1]) == 2 and parts[-2] in _SECOND_LEVEL_LABELS:
        tld_size = 2
    subdomain = ".".join(parts[: -(tld_size + 1)])
    if subdomain == "www":
        subdomain = ""
    return subdomain, ".".join(parts[-tld_size:])


def parse_url(url: str | None) -> dict[str, Any]:
    if not url:
        return {}
    parts = urlsplit(url)
    host = parts.hostname or ""
    subdomain, tld = _split_host(host)
    return _with_lowercase(
        {
            "url": url,
            "domain": host,
            "subdomain": subdomain,
            "topLevelDomain": tld,
            "path": parts.path,
            "query": parts.query,
            "fragment": parts.fragment,
        }
    )


def _address(request: DeliveryRequest, details: RequestDetails) -> Address | None:
    if details.address is not None:
        return details.address
    return request.context.address


def collate_page(
    request: DeliveryRequest,
    details: RequestDetails,
    referring: bool = False,
) -> dict[str, Any]:
    """Page fields of the current URL, or of the referring URL when ``referring``."""
    address = _address(request, details)
    if address is None:
        return {}
    return parse_url(address.referring_url if referring else address.url)


def collate_custom(request: DeliveryRequest, details: RequestDetails) -> dict[str, Any]:
    """Custom mbox parameters of the item, each string with a lower-cased companion."""
    return _with_lowercase(details.parameters)


def collate_geo(geo: Geo | None) -> dict[str, Any]:
    if geo is None:
        return {}
    values = {
        "country": geo.country_code,
        "region": geo.state_code,
        "city": geo.city,
        "latitude": geo.latitude,
        "longitude": geo.longitude,
    }
    return {k: v for k, v in values.items() if v is not None}
