"""RuleSet parsing and version gate tests."""

import pytest

from localdecisioning.domain.rule_set import DEFAULT_GLOBAL_MBOX, parse_rule_set
from localdecisioning.errors import ArtifactError


def _artifact(version="1.0.0", **overrides):
    raw = {
        "version": version,
        "globalMbox": "target-global-mbox",
        "geoTargetingEnabled": True,
        "localMboxes": ["hero", "footer"],
        "remoteMboxes": ["server-only"],
        "localViews": ["home"],
        "remoteViews": [],
        "meta": {"clientCode": "acme", "environment": "production"},
        "rules": {
            "mboxes": {
                "hero": [
                    {
                        "ruleKey": "123",
                        "condition": {"==": [1, 1]},
                        "consequence": {"options": [{"type": "html", "content": "<b>hi</b>"}]},
                        "propertyTokens": ["tok-a"],
                        "meta": {"activityId": 123, "experienceId": 0, "audienceIds": [9], "offerIds": [7]},
                    }
                ]
            },
            "views": {"home": []},
        },
    }
    raw.update(overrides)
    return raw


class TestParse:
    def test_valid_artifact(self):
        rule_set = parse_rule_set(_artifact())
        assert rule_set.version == "1.0.0"
        assert rule_set.geo_targeting_enabled is True
        assert rule_set.local_mboxes == frozenset({"hero", "footer"})
        rule = rule_set.mbox_rules("hero")[0]
        assert rule.rule_key == "123"
        assert rule.property_tokens == frozenset({"tok-a"})
        assert rule.activity_id == 123
        assert rule.audience_ids == [9]
        assert rule.offer_ids == [7]

    def test_defaults(self):
        rule_set = parse_rule_set({"version": "1.2", "rules": {}})
        assert rule_set.global_mbox == DEFAULT_GLOBAL_MBOX
        assert rule_set.mbox_rules("anything") == ()
        assert rule_set.geo_targeting_enabled is False

    def test_view_rules_none_collects_all(self):
        raw = _artifact()
        raw["rules"]["views"] = {
            "home": [{"condition": True, "meta": {"activityId": 1}}],
            "cart": [{"condition": True, "meta": {"activityId": 2}}],
        }
        rule_set = parse_rule_set(raw)
        assert len(rule_set.view_rules(None)) == 2
        assert len(rule_set.view_rules("cart")) == 1
        assert rule_set.view_rules("missing") == ()

    def test_rule_set_is_immutable(self):
        rule_set = parse_rule_set(_artifact())
        with pytest.raises(Exception):
            rule_set.version = "2.0"


class TestRejection:
    @pytest.mark.parametrize("version", ["2.0.0", "0.9", "10.0", "v1.0"])
    def test_unsupported_major_version(self, version):
        with pytest.raises(ArtifactError) as exc:
            parse_rule_set(_artifact(version=version))
        assert version in exc.value.message

    def test_configured_major_version(self):
        assert parse_rule_set(_artifact(version="2.1"), supported_major_version="2").version == "2.1"

    def test_missing_rules(self):
        raw = _artifact()
        del raw["rules"]
        with pytest.raises(ArtifactError):
            parse_rule_set(raw)

    def test_missing_version(self):
        raw = _artifact()
        del raw["version"]
        with pytest.raises(ArtifactError):
            parse_rule_set(raw)

    def test_not_an_object(self):
        with pytest.raises(ArtifactError):
            parse_rule_set(["version", "1.0"])
