"""LocalExecutionEvaluator: can a request be fully decided on-device?"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..models.delivery import TargetDeliveryRequest
from ..ports.rule_source import RuleSource
from .rule_set import RuleSet

REASON_NULL_REQUEST = "Given request cannot be null"
REASON_RULES_UNAVAILABLE = "Local-decisioning rule set not yet available"
UNNAMED_MBOX_LABEL = "(unnamed)"


@dataclass(frozen=True)
class LocalExecutionEvaluation:
    """Go/no-go for local execution, with the names that force a remote call."""

    eligible: bool
    reason: str | None = None
    remote_mboxes: list[str | None] = field(default_factory=list)
    remote_views: list[str] = field(default_factory=list)


def request_mbox_names(request: TargetDeliveryRequest, rule_set: RuleSet) -> list[str | None]:
    """Distinct mbox names in the request; page-loads count as the global mbox.

    An mbox sent without a name is listed as None.
    """
    names: list[str | None] = []
    delivery = request.request
    for section in (delivery.prefetch, delivery.execute):
        if section is None:
            continue
        if section.page_load is not None:
            names.append(rule_set.global_mbox)
        names.extend(m.name for m in section.mboxes)
    return list(dict.fromkeys(names))


def request_view_names(request: TargetDeliveryRequest) -> list[str | None]:
    """View names in the prefetch section; None stands for 'all views'."""
    prefetch = request.request.prefetch
    if prefetch is None:
        return []
    return list(dict.fromkeys(v.name for v in prefetch.views))


class LocalExecutionEvaluator:
    """Decide whether every mbox and view of a request is covered by local rules.

    A name present in both the local and the remote coverage index is treated
    as remote.
    """

    def __init__(self, rule_source: RuleSource) -> None:
        self._rules = rule_source

    def evaluate(self, request: TargetDeliveryRequest | None) -> LocalExecutionEvaluation:
        if request is None:
            return LocalExecutionEvaluation(False, REASON_NULL_REQUEST)
        rule_set = self._rules.get_latest_rules()
        if rule_set is None:
            return LocalExecutionEvaluation(False, REASON_RULES_UNAVAILABLE)

        remote_mboxes = self._remote_mboxes(request, rule_set)
        remote_views = self._remote_views(request, rule_set)
        if not remote_mboxes and not remote_views:
            return LocalExecutionEvaluation(True)

        parts: list[str] = []
        if remote_mboxes:
            labels = [UNNAMED_MBOX_LABEL if n is None else n for n in remote_mboxes]
            parts.append(f"mboxes [{', '.join(labels)}]")
        if remote_views:
            parts.append(f"views [{', '.join(remote_views)}]")
        return LocalExecutionEvaluation(
            False,
            "remote activities in: " + ", ".join(parts),
            remote_mboxes=remote_mboxes,
            remote_views=remote_views,
        )

    @staticmethod
    def _remote_mboxes(request: TargetDeliveryRequest, rule_set: RuleSet) -> list[str | None]:
        names = request_mbox_names(request, rule_set)
        remote: list[str | None] = sorted(
            name
            for name in names
            if name is not None
            and (name not in rule_set.local_mboxes or name in rule_set.remote_mboxes)
        )
        # an unnamed mbox can never match a local rule
        if None in names:
            remote.append(None)
        return remote

    @staticmethod
    def _remote_views(request: TargetDeliveryRequest, rule_set: RuleSet) -> list[str]:
        names = request_view_names(request)
        if not names:
            return []
        remote = set()
        for name in names:
            if name is None:
                remote.update(rule_set.remote_views)
            elif name not in rule_set.local_views or name in rule_set.remote_views:
                remote.add(name)
        return sorted(remote)
