# tests/test_http_app.py
import json

import pytest
from fastapi.testclient import TestClient

from ide_bridge.config import Settings
from ide_bridge.di import build_container
from ide_server.http_app import create_app, send_json
from ide_server.registry import ToolRegistry


@pytest.fixture
def client(container):
    return TestClient(create_app(container))


def test_preflight_gets_cors_headers(client):
    r = client.options("/mcp/anything")
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "*"
    assert "POST" in r.headers["access-control-allow-methods"]


def test_list_tools(client):
    r = client.get("/mcp/list_tools")
    assert r.status_code == 200
    tools = r.json()
    assert tools[0]["name"] == "get_file_text_by_path"
    assert tools[0]["inputSchema"]["type"] == "object"
    assert r.headers["access-control-allow-origin"] == "*"


def test_initialize_uses_first_id_from_query(client, root):
    body = client.get("/mcp/initialize?id=7&id=8").json()
    assert body["jsonrpc"] == "2.0"
    assert body["id"] == "7"
    assert body["result"]["serverInfo"]["name"] == "ide-mcp-bridge"
    assert body["result"]["capabilities"]["tools"] == {"listChanged": True}
    assert body["result"]["environment"]["workspaceRoot"] == root


def test_status(client):
    body = client.get("/mcp/status").json()
    assert body["id"] is None
    assert body["result"]["status"] == "running"
    assert body["result"]["environment"]["openFiles"] == []


def test_unknown_tool_is_404(client):
    r = client.post("/mcp/no_such_tool", json={})
    assert r.status_code == 404
    assert r.json() == {"status": None, "error": "Unknown tool: no_such_tool"}


def test_tool_call_plain_arguments(client, tmp_path):
    (tmp_path / "a.txt").write_text("hello", encoding="utf-8")
    r = client.post("/mcp/get_file_text_by_path", json={"pathInProject": "a.txt"})
    assert r.status_code == 200
    body = r.json()
    assert body["error"] is None
    assert json.loads(body["status"]) == {"content": "hello", "pathInProject": "a.txt"}


def test_tool_call_unwraps_jsonrpc_envelope(client, tmp_path):
    (tmp_path / "a.txt").write_text("hello", encoding="utf-8")
    envelope = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "tools/call",
        "params": {"name": "get_file_text_by_path", "arguments": {"pathInProject": "a.txt"}},
    }
    body = client.post("/mcp/get_file_text_by_path", json=envelope).json()
    assert json.loads(body["status"])["content"] == "hello"


def test_malformed_json_is_400(client):
    r = client.post("/mcp/get_file_text_by_path", content=b"{not json", headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert r.json()["error"].startswith("Invalid JSON body")


def test_empty_body_means_no_arguments(client):
    r = client.post("/mcp/get_file_text_by_path")
    assert r.status_code == 200
    assert r.json()["error"].startswith("Invalid arguments for get_file_text_by_path")


def test_empty_body_equals_empty_object(client):
    empty = client.post("/mcp/get_terminal_info")
    explicit = client.post("/mcp/get_terminal_info", json={})
    assert empty.status_code == explicit.status_code == 200
    assert empty.json() == explicit.json()
    assert empty.json()["error"] is None


class FailingLookupRegistry(ToolRegistry):
    def get(self, name):
        if name == "explode":
            raise RuntimeError("registry unavailable")
        return super().get(name)


def test_unexpected_dispatch_error_is_500(container):
    client = TestClient(create_app(container, registry=FailingLookupRegistry()))
    r = client.post("/mcp/explode", json={})
    assert r.status_code == 500
    assert r.headers["content-type"].startswith("application/json")
    assert r.json() == {"status": None, "error": "Error processing request: registry unavailable"}

    # The server keeps serving after the failure
    assert client.get("/mcp/status").status_code == 200
    assert client.post("/mcp/explode", json={}).status_code == 500


def test_path_escape_is_a_tool_error(client):
    body = client.post("/mcp/get_file_text_by_path", json={"pathInProject": "../../etc/passwd"}).json()
    assert body["status"] is None
    assert "outside project directory" in body["error"]


def test_forbidden_origin(tmp_path):
    container = build_container(
        Settings(PROJECT_ROOT=tmp_path, MCP_HTTP_ALLOWED_ORIGINS="http://localhost:3000", _env_file=None)
    )
    client = TestClient(create_app(container))
    assert client.get("/mcp/list_tools", headers={"Origin": "http://evil.example"}).status_code == 403
    assert client.get("/mcp/list_tools", headers={"Origin": "http://LOCALHOST:3000"}).status_code == 200
    assert client.get("/mcp/list_tools").status_code == 200


def test_send_json_degrades_on_unserializable_payload():
    r = send_json(200, {"x": object()})
    assert r.status_code == 500
    assert json.loads(r.body)["error"] == "Internal server error while sending response"


# ---------- JSON-RPC endpoint ----------


def rpc(client, method, params=None, id_=1):
    msg = {"jsonrpc": "2.0", "id": id_, "method": method}
    if params is not None:
        msg["params"] = params
    return client.post("/mcp", json=msg)


def test_rpc_initialize_and_list(client):
    init = rpc(client, "initialize", {"clientInfo": {"name": "test"}}).json()
    assert init["id"] == 1
    assert init["result"]["protocolVersion"] == "2024-11-05"

    tools = rpc(client, "tools/list", id_=2).json()["result"]["tools"]
    assert any(t["name"] == "list_files_in_folder" for t in tools)


def test_rpc_tools_call_uses_mcp_content_shape(client, tmp_path):
    (tmp_path / "a.txt").write_text("hello", encoding="utf-8")
    body = rpc(client, "tools/call", {"name": "get_file_text_by_path", "arguments": {"pathInProject": "a.txt"}}).json()
    res = body["result"]
    assert res["isError"] is False
    assert json.loads(res["content"][0]["text"])["content"] == "hello"

    bad = rpc(client, "tools/call", {"name": "get_file_text_by_path", "arguments": {"pathInProject": "nope.txt"}})
    assert bad.json()["result"]["isError"] is True


def test_rpc_errors(client):
    assert rpc(client, "does/not/exist").json()["error"]["code"] == -32601
    assert rpc(client, "tools/call", {"name": "nope"}).json()["error"]["code"] == -32602
    assert client.post("/mcp", content=b"garbage").json()["error"]["code"] == -32700
    assert client.post("/mcp", json={"id": 1, "method": "ping"}).json()["error"]["code"] == -32600
    assert client.get("/mcp").json()["error"]["code"] == -32600


def test_rpc_ping_and_notifications(client):
    assert rpc(client, "ping").json()["result"] == {}
    r = client.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})
    assert r.status_code == 200
    assert r.content == b""
