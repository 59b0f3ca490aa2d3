# ide_server/registry.py
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Type

from pydantic import BaseModel, ValidationError

from ide_bridge.logging import log_tool_call
from ide_server.envelope import ToolResponse, failure, format_error, success

log = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[Any]]


def schema_from_model(model: Type[BaseModel]) -> Dict[str, Any]:
    # JSON Schema for the tool's input parameters
    return model.model_json_schema()


def _validation_message(err: ValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e["loc"]) or "arguments"
        parts.append(f"{loc}: {e['msg']}")
    return "; ".join(parts)


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Handler

    @property
    def input_schema(self) -> Dict[str, Any]:
        return schema_from_model(self.input_model)

    async def handle(self, arguments: Optional[Dict[str, Any]]) -> ToolResponse:
        """
        Validate arguments with the input model, run the handler, and turn any
        exception into a failure response. Never raises.
        """
        arguments = arguments or {}
        log_tool_call(log, self.name, arguments)
        try:
            args_obj = self.input_model.model_validate(arguments)
        except ValidationError as e:
            return failure(f"Invalid arguments for {self.name}: {_validation_message(e)}")

        started = time.perf_counter()
        try:
            out = await self.handler(args_obj)
        except Exception as e:
            log.exception("Error in %s", self.name)
            return failure(f"Error in {self.name}: {format_error(e)}")
        log.info("%s completed in %.2fms", self.name, (time.perf_counter() - started) * 1000)
        return out if isinstance(out, ToolResponse) else success(out)


class ToolRegistry:
    """
    Name -> Tool map built once at startup.

    Registering a name twice keeps the later tool (at the earlier position).
    """

    def __init__(self):
        self._tools: Dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            log.warning("tool %s registered twice; keeping the later one", tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def list(self) -> List[Tool]:
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self.list())


def list_tools_payload(registry: ToolRegistry) -> List[Dict[str, Any]]:
    """Discovery entries, in registration order."""
    return [
        {"name": t.name, "description": t.description, "inputSchema": t.input_schema}
        for t in registry.list()
    ]


def register_into_fastmcp(mcp, registry: ToolRegistry) -> None:
    """
    Register all registry tools into a FastMCP stdio host.
    This keeps stdio and HTTP transports in sync without duplication.
    """
    from fastmcp.exceptions import ToolError

    for tool in registry.list():
        # Create a local closure so each handler binds to its tool
        def make_tool(tool: Tool):
            async def tool_handler(arguments):
                response = await tool.handle(arguments.model_dump(exclude_none=True))
                if response.is_error:
                    raise ToolError(response.error)
                return response.status

            tool_handler.__annotations__ = {"arguments": tool.input_model, "return": str}
            tool_handler.__name__ = tool.name
            return tool_handler

        # FastMCP's decorator returns a decorator we can call dynamically.
        mcp.tool(name=tool.name, description=tool.description)(make_tool(tool))
