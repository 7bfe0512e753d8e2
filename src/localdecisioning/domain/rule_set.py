"""Rule and RuleSet: the immutable, versioned decisioning artifact."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import ArtifactError

DEFAULT_GLOBAL_MBOX = "target-global-mbox"


class _ArtifactModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Rule(_ArtifactModel):
    """A single targeting rule: condition tree, consequence payload, metadata."""

    condition: Any = Field(..., description="JSON-logic expression evaluated against the context")
    consequence: dict[str, Any] = Field(default_factory=dict, description="Options/metrics/view payload")
    rule_key: str | None = Field(default=None, description="Mutual-exclusion key within an activity")
    property_tokens: frozenset[str] = Field(default_factory=frozenset, description="Scoping property tokens")
    meta: dict[str, Any] = Field(default_factory=dict, description="Activity metadata")

    @property
    def activity_id(self) -> Any:
        return self.meta.get("activityId")

    @property
    def experience_id(self) -> Any:
        return self.meta.get("experienceId")

    @property
    def audience_ids(self) -> list[Any]:
        return list(self.meta.get("audienceIds") or [])

    @property
    def offer_ids(self) -> list[Any]:
        return list(self.meta.get("offerIds") or [])


class RuleIndex(_ArtifactModel):
    """Ordered rule lists keyed by mbox name and by view name."""

    mboxes: dict[str, tuple[Rule, ...]] = Field(default_factory=dict)
    views: dict[str, tuple[Rule, ...]] = Field(default_factory=dict)


class RuleSet(_ArtifactModel):
    """Versioned rule set. Replaced wholesale on refresh, never mutated."""

    version: str = Field(..., description="Artifact version, e.g. '1.0.0'")
    global_mbox: str = Field(default=DEFAULT_GLOBAL_MBOX, description="Mbox name used for page-loads")
    rules: RuleIndex = Field(..., description="Rules keyed by mbox and view")
    local_mboxes: frozenset[str] = Field(default_factory=frozenset)
    remote_mboxes: frozenset[str] = Field(default_factory=frozenset)
    local_views: frozenset[str] = Field(default_factory=frozenset)
    remote_views: frozenset[str] = Field(default_factory=frozenset)
    geo_targeting_enabled: bool = Field(default=False)
    meta: dict[str, Any] = Field(default_factory=dict)

    def mbox_rules(self, name: str | None) -> tuple[Rule, ...]:
        if name is None:
            return ()
        return self.rules.mboxes.get(name, ())

    def view_rules(self, name: str | None) -> tuple[Rule, ...]:
        """Rules for ``name``; every view's rules when ``name`` is None."""
        if name is not None:
            return self.rules.views.get(name, ())
        collected: list[Rule] = []
        for rules in self.rules.views.values():
            collected.extend(rules)
        return tuple(collected)


def parse_rule_set(raw: Any, supported_major_version: str = "1") -> RuleSet:
    """Validate a decoded artifact body. Raises ArtifactError; never returns a partial RuleSet."""
    if not isinstance(raw, dict):
        raise ArtifactError("Unable to parse local-decisioning rule set")
    version = raw.get("version")
    if isinstance(version, str) and not version.startswith(f"{supported_major_version}."):
        raise ArtifactError(
            f"Unknown rules version: {version}",
            details={"version": version, "supported": supported_major_version},
        )
    try:
        return RuleSet.model_validate(raw)
    except ValidationError as e:
        raise ArtifactError(
            "Unable to parse local-decisioning rule set",
            details={"errors": e.errors(include_url=False)},
        ) from e
