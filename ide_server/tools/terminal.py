# ide_server/tools/terminal.py
import asyncio
import os
import platform
from typing import Dict, Optional

from pydantic import BaseModel, Field

from ide_bridge.services.filesystem import FileSystemService
from ide_bridge.services.runner import CommandRunner
from ide_server.envelope import failure, success
from ide_server.registry import Tool, ToolRegistry


class NoArgsIn(BaseModel):
    pass


class CommandIn(BaseModel):
    command: str = Field(..., min_length=1, description="Shell command line")


class OsCommandIn(BaseModel):
    windowsCommand: Optional[str] = Field(None, description="Command used on Windows")
    unixCommand: Optional[str] = Field(None, description="Command used on Linux, and on macOS without macCommand")
    macCommand: Optional[str] = Field(None, description="Command used on macOS")
    command: Optional[str] = Field(None, description="Fallback command for any platform")


class BackgroundCommandIn(BaseModel):
    command: str = Field(..., min_length=1, description="Shell command line")
    cwd: Optional[str] = Field(None, description="Working directory inside the project (default: project root)")
    env: Optional[Dict[str, Optional[str]]] = Field(None, description="Extra environment variables; null unsets")
    timeout: Optional[int] = Field(None, ge=1, description="Timeout in milliseconds")


class WaitIn(BaseModel):
    milliseconds: int = Field(..., ge=0, le=600_000, description="Time to wait in milliseconds")


def os_type(system: Optional[str] = None) -> str:
    system = platform.system() if system is None else system
    return {"Darwin": "macos"}.get(system, system.lower() or "unknown")


def pick_os_command(os_name: str, args: OsCommandIn) -> Optional[str]:
    """Platform-specific command for `os_name`, else the generic one."""
    if os_name == "windows":
        chosen = args.windowsCommand
    elif os_name == "macos":
        chosen = args.macCommand or args.unixCommand
    elif os_name == "linux":
        chosen = args.unixCommand
    else:
        chosen = None
    return chosen or args.command or None


def terminal_info() -> Dict[str, object]:
    system = platform.system()
    shell = os.environ.get("COMSPEC" if system == "Windows" else "SHELL", "")
    return {
        "osType": os_type(system),
        "osVersion": platform.release(),
        "terminalType": os.path.basename(shell) or "unknown",
        "isIntegratedTerminal": False,
        "isDefault": True,
    }


def register_terminal_tools(registry: ToolRegistry, runner: CommandRunner, fs_service: FileSystemService):
    # Commands may change any file in the project, so cached contents are dropped
    async def execute_terminal_command(args: CommandIn):
        await runner.spawn(args.command, cwd=fs_service.resolver.require("/"))
        fs_service.cache.clear()
        return success({"status": "executed"})

    async def execute_os_specific_command(args: OsCommandIn):
        if not (args.windowsCommand or args.unixCommand or args.macCommand or args.command):
            return failure("No command specified")
        current = os_type()
        command = pick_os_command(current, args)
        if not command:
            return failure(f"No command specified for {current} operating system")
        await runner.spawn(command, cwd=fs_service.resolver.require("/"))
        fs_service.cache.clear()
        return success({"osType": current, "command": command, "executed": True})

    async def run_command_on_background(args: BackgroundCommandIn):
        cwd = fs_service.resolver.require(args.cwd or "/")
        timeout = args.timeout / 1000 if args.timeout else None
        try:
            result = await runner.run(args.command, cwd=cwd, env=args.env, timeout=timeout)
        finally:
            fs_service.cache.clear()
        return success(result.to_dict())

    async def wait(args: WaitIn):
        await asyncio.sleep(args.milliseconds / 1000)
        return success({"status": "completed", "message": f"Waited for {args.milliseconds} milliseconds"})

    async def get_terminal_info(args: NoArgsIn):
        return success(terminal_info())

    for tool in (
        Tool(
            name="execute_terminal_command",
            description="Start a shell command in the project directory. Only the execution status is returned.",
            input_model=CommandIn,
            handler=execute_terminal_command,
        ),
        Tool(
            name="execute_os_specific_command",
            description="Execute a command with syntax adjusted for the detected operating system. "
            "Provide per-platform variants (windowsCommand, unixCommand, macCommand) or a generic command.",
            input_model=OsCommandIn,
            handler=execute_os_specific_command,
        ),
        Tool(
            name="run_command_on_background",
            description="Execute a command in the background and return its stdout, stderr and exit code.",
            input_model=BackgroundCommandIn,
            handler=run_command_on_background,
        ),
        Tool(
            name="wait",
            description="Wait for a specified number of milliseconds before continuing.",
            input_model=WaitIn,
            handler=wait,
        ),
        Tool(
            name="get_terminal_info",
            description="Retrieve information about the operating system and the default shell.",
            input_model=NoArgsIn,
            handler=get_terminal_info,
        ),
    ):
        registry.register(tool)
