"""Port: read access to the most recently published rule set."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..domain.rule_set import RuleSet


@runtime_checkable
class RuleSource(Protocol):
    """Never blocks on I/O; None until a rule set has been published."""

    def get_latest_rules(self) -> RuleSet | None: ...
