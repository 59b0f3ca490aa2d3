# ide_server/envelope.py
"""
Response shapes for the wire protocol.

Tools return one internal `ToolResponse`; transports pick an adapter:
`to_plain` gives the path-addressed `{status, error}` shape, `to_mcp` the MCP
`{content: [...], isError}` shape used by the JSON-RPC endpoint.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

JSONRPC_VERSION = "2.0"


class JsonRpcErrorCodes:
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


@dataclass(frozen=True)
class ToolResponse:
    status: Any = None
    error: Optional[str] = None
    content: Optional[List[Dict[str, Any]]] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


def _to_text(data: Any) -> str:
    if isinstance(data, str):
        return data
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def success(data: Any) -> ToolResponse:
    """Payload is serialized to text unless it already is a string."""
    if data is None:
        data = ""
    return ToolResponse(status=_to_text(data))


def raw(data: Any) -> ToolResponse:
    """Success that keeps the payload's original type."""
    return ToolResponse(status=data)


def failure(message: str) -> ToolResponse:
    return ToolResponse(error=message or "Unknown error")


def text_content(text: str) -> Dict[str, Any]:
    return {"type": "text", "text": text}


def result(content_items: Sequence[Dict[str, Any]], is_error: bool = False) -> ToolResponse:
    """Multi-part result; the plain shape carries the joined text parts."""
    items = list(content_items)
    joined = "\n".join(i.get("text", "") for i in items if i.get("type") == "text")
    if is_error:
        return ToolResponse(error=joined or "Unknown error", content=items)
    return ToolResponse(status=joined, content=items)


def to_plain(response: ToolResponse) -> Dict[str, Any]:
    if response.is_error:
        return {"status": None, "error": response.error}
    return {"status": response.status, "error": None}


def to_mcp(response: ToolResponse) -> Dict[str, Any]:
    if response.content is not None:
        items = response.content
    elif response.is_error:
        items = [text_content(response.error)]
    else:
        items = [text_content(_to_text(response.status))]
    return {"content": items, "isError": response.is_error}


def normalize_id(request_id: Any) -> Any:
    if isinstance(request_id, (list, tuple)):
        request_id = request_id[0] if request_id else None
    return request_id if request_id not in ("", None) else None


def create_jsonrpc_response(result_: Any, request_id: Any) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": normalize_id(request_id), "result": result_}


def create_jsonrpc_error(request_id: Any, code: int, message: str, data: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "jsonrpc": JSONRPC_VERSION,
        "id": normalize_id(request_id),
        "error": {"code": code, "message": message},
    }
    if data is not None:
        body["error"]["data"] = data
    return body


def format_error(error: BaseException) -> str:
    return str(error) or error.__class__.__name__
