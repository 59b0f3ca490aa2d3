# ide_server/main.py
import argparse
import asyncio
import logging
import signal
from typing import List, Optional

from fastmcp import FastMCP

from ide_bridge.config import Settings
from ide_bridge.di import Container, build_container
from ide_bridge.logging import configure_logging
from ide_server.http_app import create_app
from ide_server.lifecycle import ServerManager
from ide_server.registry import register_into_fastmcp
from ide_server.toolset import build_tool_registry

log = logging.getLogger(__name__)


def create_stdio_app(container: Container) -> FastMCP:
    """
    Create a FastMCP host exposing the same registry as the HTTP transport.
    The client (agent/IDE) launches this process and speaks JSON-RPC on stdin/stdout.
    """
    s = container.settings
    mcp = FastMCP(s.SERVER_NAME, version=s.SERVER_VERSION)
    register_into_fastmcp(mcp, build_tool_registry(container))
    return mcp


async def serve_http(container: Container) -> None:
    app = create_app(container)
    manager = ServerManager(app, container.settings, container.status, container.runner)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops
            pass

    try:
        if await manager.start() is None:
            raise SystemExit(1)
        await stop.wait()
    finally:
        await manager.dispose()


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="ide-mcp-bridge", description="Expose a project directory to MCP clients.")
    parser.add_argument("--root", help="project root (overrides PROJECT_ROOT)")
    parser.add_argument("--stdio", action="store_true", help="serve MCP over stdio instead of HTTP")
    parser.add_argument("--log-level", help="overrides LOG_LEVEL")
    args = parser.parse_args(argv)

    settings = Settings(PROJECT_ROOT=args.root) if args.root else Settings()
    configure_logging(args.log_level or settings.LOG_LEVEL)

    container = build_container(settings)
    log.info("project root %s", container.workspace.root_path())

    if args.stdio:
        create_stdio_app(container).run(transport="stdio")
    else:
        asyncio.run(serve_http(container))


if __name__ == "__main__":
    main()
