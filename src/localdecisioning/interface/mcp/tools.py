"""Tool registry for the decisioning MCP server.

Each tool takes the delivery request as a JSON string, delegates to
LocalDecisioningService and returns a JSON string.
"""

from __future__ import annotations

import json
import time
from functools import lru_cache

from ...services.decisioning_service import LocalDecisioningService
from ..payloads import (
    artifact_payload,
    evaluation_payload,
    parse_target_request,
    response_payload,
)
from .observability import log_tool_invocation, metrics_snapshot, record_engine_error

ALLOWED_TOOLS = frozenset({"decisioning_check", "decisioning_execute", "decisioning_artifact"})


@lru_cache(maxsize=1)
def get_service() -> LocalDecisioningService:
    """Build the process-wide service and start background rule polling."""
    from ...wiring import build_decisioning_service

    service = build_decisioning_service(exception_handler=record_engine_error)
    service.rule_loader.start()
    return service


def _parse(request_json: str):
    try:
        return parse_target_request(json.loads(request_json)), None
    except ValueError as e:
        return None, str(e)


def register_tools(mcp):
    """Register the decisioning tools on a FastMCP server."""

    @mcp.tool()
    def decisioning_check(request_json: str) -> str:
        """Report whether a delivery request can be decided on-device.

        Args:
            request_json: Delivery request JSON, bare or wrapped as {"request": ..., "sessionId": ...}

        Returns:
            JSON with eligible, reason, remote_mboxes, remote_views
        """
        t0 = time.monotonic()
        request, error = _parse(request_json)
        if request is None:
            log_tool_invocation("decisioning_check", None, (time.monotonic() - t0) * 1000, error=error)
            return json.dumps({"error": "invalid request_json", "detail": error})
        evaluation = get_service().evaluate_local_execution(request)
        log_tool_invocation(
            "decisioning_check",
            request.request.request_id,
            (time.monotonic() - t0) * 1000,
            extra={"eligible": evaluation.eligible},
        )
        return json.dumps(evaluation_payload(evaluation), indent=2)

    @mcp.tool()
    def decisioning_execute(request_json: str) -> str:
        """Run local decisioning for a delivery request.

        Args:
            request_json: Delivery request JSON, bare or wrapped as {"request": ..., "sessionId": ...}

        Returns:
            JSON with status, message, response (wire format) and notifications
        """
        t0 = time.monotonic()
        request, error = _parse(request_json)
        if request is None:
            log_tool_invocation("decisioning_execute", None, (time.monotonic() - t0) * 1000, error=error)
            return json.dumps({"error": "invalid request_json", "detail": error})
        response = get_service().execute_request(request)
        log_tool_invocation(
            "decisioning_execute",
            response.response.request_id,
            (time.monotonic() - t0) * 1000,
            extra={"status": response.status, "notifications_count": len(response.notifications)},
        )
        return json.dumps(response_payload(response), indent=2)

    @mcp.tool()
    def decisioning_artifact() -> str:
        """Rule-set artifact status: location, loader state, fetch count, version, coverage and error counters."""
        t0 = time.monotonic()
        payload = artifact_payload(get_service().rule_loader)
        payload["metrics"] = metrics_snapshot()
        log_tool_invocation(
            "decisioning_artifact",
            None,
            (time.monotonic() - t0) * 1000,
            extra={"loaded": payload["loaded"]},
        )
        return json.dumps(payload, indent=2)
