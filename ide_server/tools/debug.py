# ide_server/tools/debug.py
import shlex
import sys
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ide_bridge.services.filesystem import FileSystemService
from ide_bridge.services.runner import CommandRunner
from ide_server.envelope import failure, success
from ide_server.registry import Tool, ToolRegistry

_RUNTIMES = {"python": sys.executable, "debugpy": sys.executable, "node": "node", "pwa-node": "node"}


class NoArgsIn(BaseModel):
    pass


class BreakpointIn(BaseModel):
    pathInProject: str = Field(..., description="Path relative to the project root")
    line: int = Field(..., ge=1, description="1-based line number")


class RunConfigIn(BaseModel):
    configName: str = Field(..., min_length=1, description="Name of the run configuration")


def launch_command(config: Dict[str, Any], workspace_root: str) -> Optional[str]:
    """Shell command for a launch.json entry; None when it describes nothing runnable."""
    if config.get("command"):
        return str(config["command"])
    program = config.get("program")
    if not program:
        return None
    program = str(program).replace("${workspaceFolder}", workspace_root)
    runtime = config.get("runtimeExecutable") or _RUNTIMES.get(str(config.get("type", "")))
    argv = ([runtime] if runtime else []) + [program] + [str(a) for a in config.get("args", [])]
    return " ".join(shlex.quote(a) for a in argv)


def register_debug_tools(registry: ToolRegistry, workspace, fs_service: FileSystemService, runner: CommandRunner):
    async def toggle_debugger_breakpoint(args: BreakpointIn):
        p = fs_service.resolver.require(args.pathInProject)
        added = workspace.toggle_breakpoint(p, args.line)
        return success({
            "pathInProject": fs_service.relative(p),
            "line": args.line,
            "action": "added" if added else "removed",
        })

    async def get_debugger_breakpoints(args: NoArgsIn):
        return success([
            {"pathInProject": fs_service.relative(bp.path), "line": bp.line}
            for bp in workspace.breakpoints()
        ])

    async def get_run_configurations(args: NoArgsIn):
        return success([
            {"name": c.get("name"), "type": c.get("type"), "request": c.get("request")}
            for c in workspace.run_configurations()
        ])

    async def run_configuration(args: RunConfigIn):
        config = workspace.find_run_configuration(args.configName)
        if config is None:
            return failure(f"Run configuration not found: {args.configName}")
        root = workspace.root_path() or "."
        command = launch_command(config, root)
        if command is None:
            return failure(f"Run configuration {args.configName} has no program or command")
        cwd = str(config.get("cwd", root)).replace("${workspaceFolder}", root)
        pid = await runner.spawn(command, cwd=fs_service.resolver.require(cwd))
        fs_service.cache.clear()
        return success({"configName": args.configName, "started": True, "pid": pid})

    for tool in (
        Tool(
            name="toggle_debugger_breakpoint",
            description="Toggle a debugger breakpoint at the given line of a project file.",
            input_model=BreakpointIn,
            handler=toggle_debugger_breakpoint,
        ),
        Tool(
            name="get_debugger_breakpoints",
            description="List all debugger breakpoints in the project.",
            input_model=NoArgsIn,
            handler=get_debugger_breakpoints,
        ),
        Tool(
            name="get_run_configurations",
            description="List the run configurations defined for the project.",
            input_model=NoArgsIn,
            handler=get_run_configurations,
        ),
        Tool(
            name="run_configuration",
            description="Start a run configuration by name.",
            input_model=RunConfigIn,
            handler=run_configuration,
        ),
    ):
        registry.register(tool)
