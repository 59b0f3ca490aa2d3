# ide_server/http_app.py
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import Response

from ide_bridge.config import Settings
from ide_bridge.di import Container, build_container
from ide_server.envelope import JsonRpcErrorCodes, create_jsonrpc_error, failure, format_error, to_plain
from ide_server.registry import ToolRegistry
from ide_server.router import RequestRouter
from ide_server.toolset import build_tool_registry

log = logging.getLogger(__name__)

JSON = "application/json"
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}
SEND_FAILED_BODY = b'{"status": null, "error": "Internal server error while sending response"}'


def send_json(status_code: int, data: Any) -> Response:
    """
    Serialize `data` as the response body. A payload that cannot be
    serialized degrades to a fixed 500 body instead of raising.
    """
    try:
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        log.error("Error serializing response: %s", e)
        return Response(content=SEND_FAILED_BODY, status_code=500, media_type=JSON)
    log.info("Sent response (status=%d, size=%d bytes)", status_code, len(body))
    return Response(content=body, status_code=status_code, media_type=JSON)


def _origin_allowed(request: Request, settings: Settings) -> bool:
    allowed = settings.allowed_origins
    origin = request.headers.get("origin")
    if not allowed or not origin:
        return True
    return origin.lower() in allowed


def create_app(container: Optional[Container] = None, registry: Optional[ToolRegistry] = None) -> FastAPI:
    if container is None:
        container = build_container()
    settings = container.settings
    if registry is None:
        registry = build_tool_registry(container)
    router = RequestRouter(registry, container.workspace, settings)

    app = FastAPI(title="IDE MCP Bridge", version=settings.SERVER_VERSION)
    app.state.container = container
    app.state.registry = registry
    app.state.router = router

    # ---------- Origin validation, CORS & preflight ----------

    @app.middleware("http")
    async def cors_mw(request: Request, call_next):
        if not _origin_allowed(request, settings):
            log.warning("Rejected request from origin %s", request.headers.get("origin"))
            response = send_json(403, to_plain(failure("Forbidden origin")))
        elif request.method == "OPTIONS":
            response = Response(status_code=200, media_type=JSON)
        else:
            response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    # ---------- JSON-RPC endpoint ----------

    @app.post(settings.MCP_RPC_PATH)
    async def rpc_endpoint(request: Request):
        payload = await router.handle_jsonrpc(await request.body())
        if payload is None:
            return Response(status_code=200, media_type=JSON)
        return send_json(200, payload)

    @app.get(settings.MCP_RPC_PATH)
    async def rpc_wrong_method():
        return send_json(
            200, create_jsonrpc_error(None, JsonRpcErrorCodes.INVALID_REQUEST, "Only POST method is allowed")
        )

    # ---------- Path-addressed endpoint ----------

    @app.api_route(settings.MCP_PATH_PREFIX + "{name:path}", methods=["GET", "POST"])
    async def tool_endpoint(name: str, request: Request):
        try:
            path_value = router.extract_path_value(request.url.path)
            request_id = request.query_params.getlist("id") or None
            status_code, payload = await router.dispatch(path_value, await request.body(), request_id)
        except Exception as e:
            # Last resort: dispatch() already turns tool errors into responses
            log.exception("Error processing request %s", request.url.path)
            status_code, payload = 500, to_plain(failure(f"Error processing request: {format_error(e)}"))
        return send_json(status_code, payload)

    return app
