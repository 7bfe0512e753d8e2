"""TraceHandler: per-request diagnostic collector for rule matching."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

from ..models.delivery import Notification, TargetDeliveryRequest, VisitorId
from .details import DetailsKind, RequestDetails
from .rule_set import Rule, RuleSet

MATCHED_IDS_KEY = "matchedSegmentIds"
UNMATCHED_IDS_KEY = "unmatchedSegmentIds"
MATCHED_RULES_KEY = "matchedRuleConditions"
UNMATCHED_RULES_KEY = "unmatchedRuleConditions"


@dataclass(frozen=True)
class ArtifactStatus:
    """Snapshot of the rule loader's fetch bookkeeping."""

    location: str
    polling_interval_ms: int
    fetch_count: int
    last_fetch: datetime | None


def _format_last_fetch(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%MZ")


def _campaign_trace(rule: Rule) -> dict[str, Any]:
    return {
        "id": rule.activity_id,
        "activityName": rule.meta.get("activityName"),
        "activityType": rule.meta.get("activityType"),
    }


class TraceHandler:
    """Collects which rules matched, with context, over one request.

    Built once per request from immutable artifact/profile snapshots. Campaign
    entries are created once per activity id; later rules of the same activity
    only append audience ids and conditions.
    """

    def __init__(
        self,
        client: str,
        rule_set: RuleSet,
        artifact: ArtifactStatus,
        request: TargetDeliveryRequest,
        visitor_id: VisitorId | None = None,
    ) -> None:
        self._rule_set = rule_set
        self._trace: dict[str, Any] = {
            "clientCode": client,
            "artifact": self._artifact_trace(rule_set, artifact),
            "profile": self._profile_trace(visitor_id or request.request.id),
        }
        self._campaigns: dict[Any, dict[str, Any]] = {}
        self._evaluated_targets: dict[Any, dict[str, Any]] = {}
        self._notifications: list[dict[str, Any]] = []

    def update_request(
        self,
        request: TargetDeliveryRequest,
        details: RequestDetails,
        is_execute: bool = False,
    ) -> None:
        self._trace["request"] = self._request_trace(request, details, is_execute)

    def add_campaign(self, rule: Rule, context: dict[str, Any], matched: bool) -> None:
        activity_id = rule.activity_id
        if activity_id is None:
            return
        if activity_id not in self._campaigns:
            campaign = _campaign_trace(rule)
            campaign["branchId"] = rule.experience_id
            campaign["offers"] = rule.offer_ids
            campaign["environmentId"] = rule.meta.get("environmentId")
            campaign["metrics"] = rule.consequence.get("metrics")
            self._campaigns[activity_id] = campaign
        target = self._evaluated_targets.get(activity_id)
        if target is None:
            target = _campaign_trace(rule)
            target["context"] = context
            target[MATCHED_IDS_KEY] = []
            target[UNMATCHED_IDS_KEY] = []
            target[MATCHED_RULES_KEY] = []
            target[UNMATCHED_RULES_KEY] = []
            self._evaluated_targets[activity_id] = target
        if matched:
            target[MATCHED_IDS_KEY].extend(rule.audience_ids)
            target[MATCHED_RULES_KEY].append(rule.condition)
        else:
            target[UNMATCHED_IDS_KEY].extend(rule.audience_ids)
            target[UNMATCHED_RULES_KEY].append(rule.condition)

    def add_notification(self, rule: Rule, notification: Notification) -> None:
        entry = notification.to_wire()
        entry["activityId"] = rule.activity_id
        self._notifications.append(entry)

    def get_current_trace(self) -> dict[str, Any]:
        """Snapshot of the trace. Campaign entries stay live; ask again after more rules run."""
        current = dict(self._trace)
        current["campaigns"] = list(self._campaigns.values())
        current["evaluatedCampaignTargets"] = list(self._evaluated_targets.values())
        if self._notifications:
            current["notifications"] = list(self._notifications)
        return current

    @staticmethod
    def _artifact_trace(rule_set: RuleSet, artifact: ArtifactStatus) -> dict[str, Any]:
        trace = dict(rule_set.meta)
        trace["artifactVersion"] = rule_set.version
        trace["pollingInterval"] = artifact.polling_interval_ms
        trace["artifactRetrievalCount"] = artifact.fetch_count
        trace["artifactLocation"] = artifact.location
        trace["artifactLastRetrieved"] = _format_last_fetch(artifact.last_fetch)
        return trace

    @staticmethod
    def _profile_trace(visitor_id: VisitorId | None) -> dict[str, Any]:
        if visitor_id is None:
            return {}
        return {"visitorId": visitor_id.to_wire()}

    def _request_trace(
        self,
        request: TargetDeliveryRequest,
        details: RequestDetails,
        is_execute: bool,
    ) -> dict[str, Any]:
        req: dict[str, Any] = {
            "sessionId": request.session_id,
            "type": "execute" if is_execute else "prefetch",
        }
        echo = details.to_wire()
        if details.kind == DetailsKind.view:
            req["view"] = echo
        else:
            echo.setdefault("name", self._rule_set.global_mbox)
            req["mbox"] = echo
        address = details.address
        if address is not None and address.url:
            req["url"] = address.url
            host = urlsplit(address.url).hostname
            if host:
                req["host"] = host
        return req
