"""MCP surface tests: tool registration and tool behaviour against a fake artifact transport."""

import json

import pytest

from localdecisioning.config.runtime import DecisioningSettings
from localdecisioning.errors import ArtifactError
from localdecisioning.interface.mcp import tools as tools_module
from localdecisioning.interface.mcp.observability import METRICS, record_engine_error
from localdecisioning.interface.mcp.server import create_server
from localdecisioning.interface.payloads import parse_target_request
from localdecisioning.ports.artifact_transport import ArtifactResponse
from localdecisioning.services.decisioning_service import LocalDecisioningService
from localdecisioning.services.rule_loader import RuleLoader

ARTIFACT = {
    "version": "1.0",
    "localMboxes": ["hero"],
    "rules": {
        "mboxes": {
            "hero": [
                {
                    "condition": True,
                    "consequence": {"options": [{"type": "json", "content": {"on": True}, "eventToken": "E"}]},
                    "meta": {"activityId": 1},
                }
            ]
        },
        "views": {},
    },
}


class FakeTransport:
    def get(self, url, headers):
        return ArtifactResponse(status=200, headers={"etag": "e1"}, body=json.dumps(ARTIFACT).encode())

    def close(self):
        pass


def _get_tool_names(server) -> set[str]:
    return set(server._tool_manager._tools.keys())


def _call(server, name, **kwargs):
    return server._tool_manager._tools[name].fn(**kwargs)


@pytest.fixture
def server(monkeypatch):
    settings = DecisioningSettings(client="acme", _env_file=None)
    loader = RuleLoader(settings, FakeTransport())
    loader.refresh()
    service = LocalDecisioningService(settings, loader)
    monkeypatch.setattr(tools_module, "get_service", lambda: service)
    return create_server()


def test_exposes_only_allowed_tools(server):
    assert _get_tool_names(server) == tools_module.ALLOWED_TOOLS


def test_check_tool(server):
    payload = json.loads(
        _call(server, "decisioning_check", request_json=json.dumps({"execute": {"mboxes": [{"name": "hero"}]}}))
    )
    assert payload["eligible"] is True

    payload = json.loads(
        _call(server, "decisioning_check", request_json=json.dumps({"execute": {"mboxes": [{"name": "x"}]}}))
    )
    assert payload["eligible"] is False
    assert payload["remote_mboxes"] == ["x"]


def test_execute_tool(server):
    before = METRICS["tool_calls"].get("decisioning_execute", 0)
    request = {"request": {"requestId": "r-1", "execute": {"mboxes": [{"name": "hero", "index": 0}]}}, "sessionId": "s"}
    payload = json.loads(_call(server, "decisioning_execute", request_json=json.dumps(request)))
    assert payload["status"] == 200
    assert payload["response"]["requestId"] == "r-1"
    assert payload["response"]["execute"]["mboxes"][0]["options"][0]["content"] == {"on": True}
    assert payload["notifications"][0]["tokens"] == ["E"]
    assert METRICS["tool_calls"]["decisioning_execute"] == before + 1


def test_execute_tool_rejects_bad_json(server):
    before = METRICS["tool_errors"].get("decisioning_execute", 0)
    payload = json.loads(_call(server, "decisioning_execute", request_json="{oops"))
    assert payload["error"] == "invalid request_json"
    assert METRICS["tool_errors"]["decisioning_execute"] == before + 1


def test_artifact_tool(server):
    payload = json.loads(_call(server, "decisioning_artifact"))
    assert payload["loaded"] is True
    assert payload["version"] == "1.0"
    assert payload["etag"] == "e1"
    assert payload["mbox_rules"] == 1
    assert payload["state"] == "idle"
    assert "tool_calls" in payload["metrics"]


def test_engine_errors_counted():
    before = METRICS["engine_errors"].get("ArtifactError", 0)
    record_engine_error(ArtifactError("Unknown rules version: 2.0"))
    assert METRICS["engine_errors"]["ArtifactError"] == before + 1


def test_parse_target_request_envelope():
    request = parse_target_request({"request": {"id": {"tntId": "t"}}, "sessionId": "abc"})
    assert request.session_id == "abc"
    assert request.request.id.tnt_id == "t"
    with pytest.raises(ValueError):
        parse_target_request([1, 2])
