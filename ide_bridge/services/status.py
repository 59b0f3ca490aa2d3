# ide_bridge/services/status.py
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Optional

log = logging.getLogger(__name__)

STATES = ("starting", "running", "stopped", "error")


class StatusReporter:
    """
    Receives server status pushes (state, bound port, errors).

    Stands in for the editor's status bar; everything is logged and the last
    state is kept for inspection.
    """

    def __init__(self, max_errors: int = 20):
        self.state = "stopped"
        self.port: Optional[int] = None
        self.errors: Deque[Dict[str, str]] = deque(maxlen=max_errors)

    def update_status(self, state: str) -> None:
        if state not in STATES:
            raise ValueError(f"Unknown server state: {state}")
        if state != self.state:
            log.info("server status %s -> %s", self.state, state)
        self.state = state

    def update_port(self, port: Optional[int]) -> None:
        self.port = port
        log.info("server port %s", port)

    def report_error(self, message: str) -> None:
        log.error("server error: %s", message)
        self.errors.append({"ts": datetime.now(timezone.utc).isoformat(), "message": message})

    def snapshot(self) -> Dict[str, Any]:
        return {"state": self.state, "port": self.port, "errors": list(self.errors)}
