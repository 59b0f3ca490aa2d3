# ide_server/lifecycle.py
from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from typing import Optional

import uvicorn

from ide_bridge.config import Settings
from ide_bridge.services.ports import bind_available_port
from ide_bridge.services.runner import CommandRunner
from ide_bridge.services.status import StatusReporter

log = logging.getLogger(__name__)

STARTUP_POLL_SEC = 0.05
SHUTDOWN_TIMEOUT_SEC = 5.0


def _exit_reason(task: asyncio.Task) -> str:
    if task.cancelled():
        return "listener cancelled"
    exc = task.exception()
    return f"{exc}" if exc else "listener exited unexpectedly"


class _EmbeddedServer(uvicorn.Server):
    # Signals belong to the process running the manager, not to the listener
    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class ServerManager:
    """
    Owns the HTTP listener: binds the first free port in the configured range,
    restarts the listener after it dies unexpectedly, and releases everything
    on `stop()` / `dispose()`.
    """

    def __init__(self, app, settings: Settings, status: StatusReporter, runner: Optional[CommandRunner] = None):
        self.app = app
        self.settings = settings
        self.status = status
        self.runner = runner
        self.port: Optional[int] = None
        self._server: Optional[_EmbeddedServer] = None
        self._socket: Optional[socket.socket] = None
        self._task: Optional[asyncio.Task] = None
        self._restart_task: Optional[asyncio.Task] = None
        self._disposed = False

    @property
    def is_running(self) -> bool:
        return self._server is not None and self._server.started and not self._task.done()

    async def start(self) -> Optional[int]:
        """Start listening; returns the bound port, or None when the server could not start."""
        if self._disposed:
            log.warning("Server manager is disposed, not starting server")
            return None
        if self.is_running:
            return self.port

        self.status.update_status("starting")
        s = self.settings
        sock = bind_available_port(s.MCP_PORT_START, s.MCP_PORT_END, s.preferred_ports, s.MCP_HTTP_HOST)
        if sock is None:
            msg = f"Could not find available port in range {s.MCP_PORT_START}-{s.MCP_PORT_END}"
            self.status.report_error(msg)
            self.status.update_status("error")
            return None

        port = sock.getsockname()[1]
        config = uvicorn.Config(self.app, log_config=None, lifespan="off", access_log=False)
        server = _EmbeddedServer(config)
        task = asyncio.create_task(server.serve(sockets=[sock]))
        self._server, self._socket, self._task = server, sock, task
        task.add_done_callback(self._on_listener_exit)

        while not server.started and not task.done():
            await asyncio.sleep(STARTUP_POLL_SEC)
        if not server.started:
            # Startup failures are reported here; the exit callback only handles crashes
            self.status.report_error(f"MCP server failed to start: {_exit_reason(task)}")
            self.status.update_status("error")
            self._close_listener()
            self._server = None
            self._task = None
            return None
        if task.done():
            return None

        self.port = port
        self.status.update_port(port)
        self.status.update_status("running")
        log.info("MCP server running on %s:%d", s.MCP_HTTP_HOST, port)
        return port

    def _on_listener_exit(self, task: asyncio.Task) -> None:
        server = self._server
        if task is not self._task or self._disposed or server is None:
            return
        if server.should_exit or not server.started:
            return
        self.status.report_error(f"MCP server error: {_exit_reason(task)}")
        self.status.update_status("error")
        self._close_listener()
        self._server = None
        self._task = None
        delay = self.settings.MCP_RESTART_DELAY_SEC
        log.info("Restarting MCP server in %.1fs", delay)
        self._restart_task = asyncio.get_running_loop().create_task(self._restart_later(delay))

    async def _restart_later(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._disposed:
            return
        log.info("Attempting to automatically restart MCP server")
        try:
            await self.start()
        except Exception as e:
            self.status.report_error(f"Failed to restart server: {e}")

    def _close_listener(self) -> None:
        # Closing the asyncio servers also unregisters the socket from the loop
        if self._server is not None:
            for srv in getattr(self._server, "servers", []):
                srv.close()
        self._release_socket()

    def _release_socket(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    async def stop(self) -> None:
        """Close the listener; the manager can be started again."""
        if self._restart_task is not None:
            self._restart_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._restart_task
            self._restart_task = None

        task, server = self._task, self._server
        if server is not None:
            server.should_exit = True
        if task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=SHUTDOWN_TIMEOUT_SEC)
            except asyncio.TimeoutError:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            except Exception as e:
                log.warning("listener ended with error during shutdown: %s", e)
        self._close_listener()
        self._task = None
        self._server = None
        self.port = None

        if self.runner is not None:
            await self.runner.aclose()
        if self.status.state != "stopped":
            self.status.update_port(None)
            self.status.update_status("stopped")
            log.info("MCP server closed")

    async def restart(self) -> Optional[int]:
        await self.stop()
        return await self.start()

    async def dispose(self) -> None:
        self._disposed = True
        await self.stop()
