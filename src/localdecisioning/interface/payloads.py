"""JSON payload shaping shared by the CLI and the MCP tools."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from ..domain.execution_evaluator import LocalExecutionEvaluation
from ..domain.rule_set import RuleSet
from ..models.delivery import DeliveryRequest, TargetDeliveryRequest, TargetDeliveryResponse
from ..services.rule_loader import RuleLoader


def parse_target_request(payload: Any) -> TargetDeliveryRequest:
    """Accept a host envelope ``{"request": {...}, "sessionId": ...}`` or a bare delivery request.

    Raises ValueError (pydantic ValidationError included) on malformed input.
    """
    if not isinstance(payload, dict):
        raise ValueError("request JSON must be an object")
    if "request" in payload:
        return TargetDeliveryRequest(
            request=DeliveryRequest.model_validate(payload["request"]),
            session_id=payload.get("sessionId") or payload.get("session_id"),
        )
    return TargetDeliveryRequest(request=DeliveryRequest.model_validate(payload))


def evaluation_payload(evaluation: LocalExecutionEvaluation) -> dict[str, Any]:
    return asdict(evaluation)


def response_payload(response: TargetDeliveryResponse) -> dict[str, Any]:
    return {
        "status": response.status,
        "message": response.message,
        "response": response.response.to_wire(),
        "notifications": [n.to_wire() for n in response.notifications],
    }


def artifact_payload(loader: RuleLoader) -> dict[str, Any]:
    rule_set: RuleSet | None = loader.get_latest_rules()
    status = loader.status()
    out: dict[str, Any] = {
        "location": status.location,
        "state": loader.state.value,
        "polling_interval_ms": status.polling_interval_ms,
        "fetch_count": status.fetch_count,
        "last_fetch": status.last_fetch.isoformat() if status.last_fetch else None,
        "etag": loader.etag,
        "loaded": rule_set is not None,
    }
    if rule_set is not None:
        out.update({
            "version": rule_set.version,
            "global_mbox": rule_set.global_mbox,
            "mbox_rules": sum(len(r) for r in rule_set.rules.mboxes.values()),
            "view_rules": sum(len(r) for r in rule_set.rules.views.values()),
            "local_mboxes": sorted(rule_set.local_mboxes),
            "remote_mboxes": sorted(rule_set.remote_mboxes),
            "local_views": sorted(rule_set.local_views),
            "remote_views": sorted(rule_set.remote_views),
            "geo_targeting_enabled": rule_set.geo_targeting_enabled,
        })
    return out
