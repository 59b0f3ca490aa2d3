# ide_server/router.py
"""
Per-request decision tree shared by the HTTP transports.

Path-addressed surface (`<prefix><verb-or-tool>`):
  list_tools            -> tool discovery list
  initialize / status   -> JSON-RPC framed handshake payloads
  <tool name>           -> tool call, plain {status, error} body

JSON-RPC surface (`handle_jsonrpc`): initialize, tools/list, tools/call,
ping and the client notifications; tool results use the MCP content shape.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional, Tuple

from ide_bridge.config import Settings
from ide_server.envelope import (
    JsonRpcErrorCodes,
    create_jsonrpc_error,
    create_jsonrpc_response,
    failure,
    format_error,
    to_mcp,
    to_plain,
)
from ide_server.registry import ToolRegistry, list_tools_payload

log = logging.getLogger(__name__)

# Arguments for a call made with an empty body
NO_ARGS: Dict[str, Any] = {}

LIST_TOOLS = "list_tools"
INITIALIZE = "initialize"
STATUS = "status"


class InvalidRequestBody(ValueError):
    pass


def parse_arguments(body: bytes) -> Dict[str, Any]:
    """Empty body -> NO_ARGS; JSON-RPC envelope -> its params.arguments; else the JSON object."""
    text = body.decode("utf-8", "replace") if isinstance(body, (bytes, bytearray)) else (body or "")
    if not text.strip():
        return NO_ARGS
    try:
        parsed = json.loads(text)
    except ValueError as e:
        raise InvalidRequestBody(f"Invalid JSON body: {e}") from e
    if not isinstance(parsed, dict):
        raise InvalidRequestBody("Request body must be a JSON object")
    if parsed.get("jsonrpc") and parsed.get("params") is not None:
        params = parsed["params"]
        args = params.get("arguments") if isinstance(params, dict) else None
        if args is None:
            return NO_ARGS
        if not isinstance(args, dict):
            raise InvalidRequestBody("params.arguments must be a JSON object")
        return args
    return parsed


class RequestRouter:
    def __init__(self, registry: ToolRegistry, workspace, settings: Settings):
        self.registry = registry
        self.workspace = workspace
        self.settings = settings

    def extract_path_value(self, path: str) -> str:
        """Verb or tool name following the service prefix."""
        prefix = self.settings.MCP_PATH_PREFIX
        _, sep, rest = path.partition(prefix)
        value = rest if sep else path
        return value.strip("/")

    # ---------- Handshake ----------

    def environment(self) -> Dict[str, Any]:
        root = self.workspace.root_path() or ""
        active = self.workspace.active_file() or ""
        return {
            "workspaceRoot": root,
            "activeFile": active,
            "currentDirectory": os.path.dirname(active) if active else root,
        }

    def initialize_result(self) -> Dict[str, Any]:
        return {
            "protocolVersion": self.settings.PROTOCOL_VERSION,
            "capabilities": {"tools": {"listChanged": True}, "resources": {}},
            "serverInfo": {"name": self.settings.SERVER_NAME, "version": self.settings.SERVER_VERSION},
            "environment": self.environment(),
        }

    def status_result(self) -> Dict[str, Any]:
        env = self.environment()
        env["openFiles"] = self.workspace.open_files()
        return {"status": "running", "environment": env}

    def initialize(self, request_id: Any = None) -> Dict[str, Any]:
        return create_jsonrpc_response(self.initialize_result(), request_id)

    def status(self, request_id: Any = None) -> Dict[str, Any]:
        return create_jsonrpc_response(self.status_result(), request_id)

    def list_tools(self):
        tools = list_tools_payload(self.registry)
        log.debug("tools list requested (%d tools)", len(tools))
        return tools

    # ---------- Path-addressed surface ----------

    async def dispatch(self, path_value: str, body: bytes = b"", request_id: Any = None) -> Tuple[int, Any]:
        """Returns (http_status, json_payload); never raises."""
        try:
            if path_value == LIST_TOOLS:
                return 200, self.list_tools()
            if path_value == INITIALIZE:
                return 200, self.initialize(request_id)
            if path_value == STATUS:
                return 200, self.status(request_id)

            tool = self.registry.get(path_value)
            if tool is None:
                log.warning("Unknown tool requested: %s", path_value)
                return 404, to_plain(failure(f"Unknown tool: {path_value}"))

            try:
                args = parse_arguments(body)
            except InvalidRequestBody as e:
                return 400, to_plain(failure(str(e)))

            response = await tool.handle(args)
            return 200, to_plain(response)
        except Exception as e:
            log.exception("Error processing request for %s", path_value)
            return 500, to_plain(failure(f"Error processing request: {format_error(e)}"))

    # ---------- JSON-RPC surface ----------

    async def handle_jsonrpc(self, body: bytes) -> Optional[Dict[str, Any]]:
        """Returns the JSON-RPC response, or None for notifications."""
        try:
            request = json.loads(body.decode("utf-8", "replace")) if body and body.strip() else None
        except ValueError:
            request = None
        if not isinstance(request, dict):
            return create_jsonrpc_error(None, JsonRpcErrorCodes.PARSE_ERROR, "Parse error: Invalid JSON")

        request_id = request.get("id")
        if request.get("jsonrpc") != "2.0":
            return create_jsonrpc_error(
                request_id, JsonRpcErrorCodes.INVALID_REQUEST, 'Invalid request: jsonrpc must be "2.0"'
            )
        method = request.get("method")
        if not method or not isinstance(method, str):
            return create_jsonrpc_error(request_id, JsonRpcErrorCodes.INVALID_REQUEST, "Invalid request: method is required")
        params = request.get("params") or {}
        if not isinstance(params, dict):
            return create_jsonrpc_error(request_id, JsonRpcErrorCodes.INVALID_PARAMS, "Invalid params: must be an object")

        log.info("JSON-RPC request %s (id=%s)", method, request_id)
        try:
            return await self._handle_method(method, params, request_id)
        except Exception as e:
            log.exception("Error handling JSON-RPC method %s", method)
            return create_jsonrpc_error(request_id, JsonRpcErrorCodes.INTERNAL_ERROR, "Internal error", format_error(e))

    async def _handle_method(self, method: str, params: Dict[str, Any], request_id: Any) -> Optional[Dict[str, Any]]:
        if method == "initialize":
            log.info("initialize from client %s", params.get("clientInfo"))
            return create_jsonrpc_response(self.initialize_result(), request_id)
        if method == "ping":
            return create_jsonrpc_response({}, request_id)
        if method == "tools/list":
            return create_jsonrpc_response({"tools": self.list_tools()}, request_id)
        if method == "tools/call":
            return await self._call_tool(params, request_id)
        if method.startswith("notifications/"):
            log.info("notification %s", method)
            return None
        return create_jsonrpc_error(request_id, JsonRpcErrorCodes.METHOD_NOT_FOUND, f"Method not found: {method}")

    async def _call_tool(self, params: Dict[str, Any], request_id: Any) -> Dict[str, Any]:
        name = params.get("name")
        if not name or not isinstance(name, str):
            return create_jsonrpc_error(request_id, JsonRpcErrorCodes.INVALID_PARAMS, "Invalid params: name is required")
        tool = self.registry.get(name)
        if tool is None:
            return create_jsonrpc_error(request_id, JsonRpcErrorCodes.INVALID_PARAMS, f"Unknown tool: {name}")
        args = params.get("arguments") or {}
        if not isinstance(args, dict):
            return create_jsonrpc_error(request_id, JsonRpcErrorCodes.INVALID_PARAMS, "Invalid params: arguments must be an object")
        response = await tool.handle(args)
        return create_jsonrpc_response(to_mcp(response), request_id)
