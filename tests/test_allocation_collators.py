"""Allocation bucketing and context collator tests."""

from datetime import datetime, timezone

import mmh3
import pytest

from localdecisioning.domain.allocation import compute_allocation, truncate_visitor_id
from localdecisioning.domain.collators import (
    collate_custom,
    collate_geo,
    collate_page,
    collate_time,
    collate_user,
    parse_url,
    parse_user_agent,
)
from localdecisioning.domain.details import RequestDetails
from localdecisioning.models.delivery import (
    Address,
    Browser,
    Context,
    DeliveryRequest,
    Geo,
    MboxRequest,
    PageLoadRequest,
)

CHROME_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.6099.71 Safari/537.36"
)
FIREFOX_WINDOWS = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0"
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Mobile/15E148 Safari/604.1"
)


class TestAllocation:
    def test_deterministic(self):
        a = compute_allocation("acme", 334411, "visitor-1")
        b = compute_allocation("acme", 334411, "visitor-1")
        assert a == b

    def test_in_range(self):
        for i in range(200):
            value = compute_allocation("acme", 1, f"v{i}")
            assert 0 <= value < 100

    def test_formula(self):
        expected_hash = mmh3.hash("acme.42.abc", 0, signed=True)
        expected = (abs(expected_hash) % 10000) / 10000 * 100
        assert compute_allocation("acme", 42, "abc") == expected

    def test_location_hint_suffix_ignored(self):
        assert compute_allocation("acme", 42, "abc.28_0") == compute_allocation("acme", 42, "abc")

    def test_truncate_visitor_id(self):
        assert truncate_visitor_id("abc.28_0") == "abc"
        assert truncate_visitor_id("abc") == "abc"
        assert truncate_visitor_id(".abc") == ".abc"


class TestTime:
    def test_fields(self):
        # 2024-01-01 was a Monday
        now = datetime(2024, 1, 1, 9, 5, tzinfo=timezone.utc)
        values = collate_time(now)
        assert values["current_day"] == "1"
        assert values["current_time"] == "0905"
        assert values["current_timestamp"] == 1704099900000


class TestUser:
    @pytest.mark.parametrize(
        "ua,browser,platform",
        [
            (CHROME_MAC, "chrome", "mac"),
            (FIREFOX_WINDOWS, "firefox", "windows"),
            (SAFARI_IPHONE, "safari", "ios"),
            (None, "unknown", "unknown"),
        ],
    )
    def test_parse_user_agent(self, ua, browser, platform):
        parsed_browser, _, parsed_platform = parse_user_agent(ua)
        assert parsed_browser == browser
        assert parsed_platform == platform

    def test_collate_user(self):
        request = DeliveryRequest(
            context=Context(user_agent=CHROME_MAC, browser=Browser(language="en-US"))
        )
        details = RequestDetails.for_mbox(MboxRequest(name="m", index=0))
        user = collate_user(request, details)
        assert user == {
            "browserType": "chrome",
            "platform": "mac",
            "browserVersion": "120.0.6099.71",
            "locale": "en-US",
        }


class TestPage:
    def test_parse_url(self):
        page = parse_url("https://www.Example.com/Shop/Items?q=1#top")
        assert page["domain"] == "www.example.com"
        assert page["subdomain"] == ""
        assert page["topLevelDomain"] == "com"
        assert page["path"] == "/Shop/Items"
        assert page["path_lc"] == "/shop/items"
        assert page["query"] == "q=1"
        assert page["fragment"] == "top"

    def test_country_code_tld(self):
        page = parse_url("https://shop.example.co.uk/")
        assert page["subdomain"] == "shop"
        assert page["topLevelDomain"] == "co.uk"

    @pytest.mark.parametrize(
        "url, subdomain, tld",
        [
            ("https://example.co.uk/", "", "co.uk"),
            ("https://www.example.co.uk/", "", "co.uk"),
            ("https://a.b.cnn.com/", "a.b", "com"),
            ("https://news.bbc.com.au/", "news", "com.au"),
            ("https://example.com/", "", "com"),
        ],
    )
    def test_top_level_domain_rule_is_consistent(self, url, subdomain, tld):
        page = parse_url(url)
        assert page["subdomain"] == subdomain
        assert page["topLevelDomain"] == tld

    def test_item_address_wins_over_context(self):
        request = DeliveryRequest(
            context=Context(address=Address(url="https://context.example.com/"))
        )
        details = RequestDetails.for_mbox(
            MboxRequest(name="m", address=Address(url="https://item.example.com/a"))
        )
        assert collate_page(request, details)["domain"] == "item.example.com"

    def test_referring(self):
        request = DeliveryRequest(
            context=Context(
                address=Address(url="https://a.com/", referring_url="https://ref.example.org/x")
            )
        )
        details = RequestDetails.for_page_load(PageLoadRequest())
        assert collate_page(request, details, referring=True)["domain"] == "ref.example.org"

    def test_no_address(self):
        details = RequestDetails.for_page_load(PageLoadRequest())
        assert collate_page(DeliveryRequest(), details) == {}


class TestCustomAndGeo:
    def test_custom_parameters_with_lowercase(self):
        details = RequestDetails.for_mbox(
            MboxRequest(name="m", parameters={"Color": "Blue", "size": "XL"})
        )
        custom = collate_custom(DeliveryRequest(), details)
        assert custom["Color"] == "Blue"
        assert custom["Color_lc"] == "blue"
        assert custom["size_lc"] == "xl"

    def test_geo(self):
        geo = Geo(country_code="US", state_code="CA", city="SAN FRANCISCO", latitude=37.75, longitude=-122.4)
        assert collate_geo(geo) == {
            "country": "US",
            "region": "CA",
            "city": "SAN FRANCISCO",
            "latitude": 37.75,
            "longitude": -122.4,
        }

    def test_geo_missing(self):
        assert collate_geo(None) == {}
        assert collate_geo(Geo(country_code="US")) == {"country": "US"}
