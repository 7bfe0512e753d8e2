"""Observability for the MCP surface.

Tool calls are logged as one structured line each (tool, trace_id, latency_ms).
Errors forwarded by the decisioning engine are logged and counted by type, so
``decisioning_artifact`` can show how often the artifact or a rule has failed
since the server started.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from ...errors import DecisioningError

_LOGGER = logging.getLogger("localdecisioning.mcp")
_LOCK = threading.Lock()

# tool_calls[name], tool_errors[name], engine_errors[error class name]
METRICS: dict[str, dict[str, int]] = {"tool_calls": {}, "tool_errors": {}, "engine_errors": {}}


def _bump(bucket: str, key: str) -> None:
    with _LOCK:
        METRICS[bucket][key] = METRICS[bucket].get(key, 0) + 1


def log_tool_invocation(
    tool: str,
    trace_id: str | None,
    latency_ms: float,
    error: str | None = None,
    extra: dict[str, Any] | None = None,
) -> None:
    payload: dict[str, Any] = {
        "tool": tool,
        "trace_id": trace_id,
        "latency_ms": round(latency_ms, 2),
    }
    if error:
        payload["error"] = error
    if extra:
        payload.update(extra)
    _LOGGER.info("tool_invocation", extra=payload)
    _bump("tool_calls", tool)
    if error:
        _bump("tool_errors", tool)


def record_engine_error(error: DecisioningError) -> None:
    """ExceptionHandler installed on the service built for the MCP server."""
    _LOGGER.warning(
        "decisioning_error",
        extra={"error_type": type(error).__name__, "error": error.message, "details": error.details},
    )
    _bump("engine_errors", type(error).__name__)


def metrics_snapshot() -> dict[str, dict[str, int]]:
    with _LOCK:
        return {k: dict(v) for k, v in METRICS.items()}
