# ide_server/toolset.py
from ide_bridge.di import Container
from ide_server.registry import ToolRegistry
from ide_server.tools.debug import register_debug_tools
from ide_server.tools.editor import register_editor_tools
from ide_server.tools.files import register_file_tools
from ide_server.tools.git import register_git_tools
from ide_server.tools.project import register_project_tools
from ide_server.tools.terminal import register_terminal_tools


def build_tool_registry(container: Container) -> ToolRegistry:
    """
    Build a registry once at startup using DI.
    Transport layers (stdio/HTTP) read from this registry to expose tools.
    """
    registry = ToolRegistry()

    # Registration order is the discovery order
    register_file_tools(registry, container.fs_service)
    register_editor_tools(registry, container.workspace, container.fs_service)
    register_git_tools(registry, container.git_service, container.fs_service)
    register_debug_tools(registry, container.workspace, container.fs_service, container.runner)
    register_terminal_tools(registry, container.runner, container.fs_service)
    register_project_tools(registry, container.fs_service)

    return registry
