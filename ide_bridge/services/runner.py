# ide_bridge/services/runner.py
from __future__ import annotations

import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

log = logging.getLogger(__name__)

_KILL = getattr(signal, "SIGKILL", signal.SIGTERM)


class CommandTimeoutError(TimeoutError):
    pass


@dataclass(frozen=True)
class CommandResult:
    stdout: str
    stderr: str
    exit_code: int

    def to_dict(self) -> Dict[str, object]:
        return {"stdout": self.stdout, "stderr": self.stderr, "exitCode": self.exit_code}


def _kill_group(proc: asyncio.subprocess.Process, sig: int = _KILL) -> None:
    if proc.returncode is not None:
        return
    try:
        if hasattr(os, "killpg"):
            os.killpg(proc.pid, sig)
        else:
            proc.kill()
    except ProcessLookupError:
        pass


class CommandRunner:
    """
    Runs subprocesses without blocking the event loop.

    Each child gets its own process group so a timeout kills everything the
    command started, not just the shell.
    """

    def __init__(self, timeout_sec: float = 15.0, max_lines: int = 2000, max_bytes: int = 1024 * 1024):
        self.timeout_sec = timeout_sec
        self.max_lines = max_lines
        self.max_bytes = max_bytes
        self._background: List[asyncio.subprocess.Process] = []

    def _env(self, env: Optional[Mapping[str, Optional[str]]]) -> Optional[Dict[str, str]]:
        if not env:
            return None
        merged = dict(os.environ)
        for k, v in env.items():
            if v is None:
                merged.pop(k, None)
            else:
                merged[k] = str(v)
        return merged

    def limit_output(self, data: bytes) -> str:
        text = data[: self.max_bytes].decode("utf-8", "replace")
        lines = text.split("\n")
        if len(lines) > self.max_lines:
            kept = "\n".join(lines[: self.max_lines])
            return f"{kept}\n\n[Output truncated, showing first {self.max_lines} lines]"
        return text

    async def _collect(self, proc: asyncio.subprocess.Process, label: str, timeout: Optional[float]) -> CommandResult:
        limit = timeout or self.timeout_sec
        try:
            out, err = await asyncio.wait_for(proc.communicate(), timeout=limit)
        except asyncio.TimeoutError:
            log.warning("command timed out after %.1fs: %s", limit, label)
            _kill_group(proc)
            await proc.wait()
            raise CommandTimeoutError(f"Command execution timed out after {limit:g}s")
        return CommandResult(self.limit_output(out), self.limit_output(err), proc.returncode or 0)

    async def run(
        self,
        command: str,
        cwd: Optional[str] = None,
        env: Optional[Mapping[str, Optional[str]]] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Run `command` through the shell and capture its output."""
        log.info("run %s (cwd=%s)", command, cwd)
        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=cwd,
            env=self._env(env),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
        return await self._collect(proc, command, timeout)

    async def exec(self, args: Sequence[str], cwd: Optional[str] = None, timeout: Optional[float] = None) -> CommandResult:
        """Run an argv without a shell; arguments need no quoting."""
        log.debug("exec %s (cwd=%s)", list(args), cwd)
        proc = await asyncio.create_subprocess_exec(
            *args,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
        return await self._collect(proc, " ".join(args), timeout)

    async def spawn(self, command: str, cwd: Optional[str] = None) -> int:
        """Start `command` detached from the request; output is discarded. Returns the pid."""
        self._background = [p for p in self._background if p.returncode is None]
        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            start_new_session=True,
        )
        self._background.append(proc)
        log.info("spawned pid=%s: %s", proc.pid, command)
        return proc.pid

    @property
    def running(self) -> int:
        return sum(1 for p in self._background if p.returncode is None)

    async def aclose(self, grace_sec: float = 2.0) -> None:
        procs, self._background = self._background, []
        for proc in procs:
            _kill_group(proc, signal.SIGTERM)
        for proc in procs:
            try:
                await asyncio.wait_for(proc.wait(), timeout=grace_sec)
            except asyncio.TimeoutError:
                _kill_group(proc)
                await proc.wait()
