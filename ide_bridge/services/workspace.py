# ide_bridge/services/workspace.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

log = logging.getLogger(__name__)

LAUNCH_CONFIG = os.path.join(".vscode", "launch.json")


class WorkspaceError(RuntimeError):
    pass


@dataclass(frozen=True)
class Breakpoint:
    path: str
    line: int

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "line": self.line}


class Workspace(Protocol):
    """Editor/workspace surface the tools depend on."""

    def root_path(self) -> Optional[str]: ...
    def active_file(self) -> Optional[str]: ...
    def open_files(self) -> List[str]: ...
    def open_file(self, absolute_path: str) -> None: ...
    def selection(self) -> Optional[Tuple[int, int]]: ...
    def set_selection(self, start: int, end: int) -> None: ...
    def toggle_breakpoint(self, absolute_path: str, line: int) -> bool: ...
    def breakpoints(self) -> List[Breakpoint]: ...
    def run_configurations(self) -> List[Dict[str, Any]]: ...


class LocalWorkspace:
    """
    In-process workspace backed by a directory on disk.

    Keeps the editor state (open documents, active document, selection,
    breakpoints) in memory; run configurations come from .vscode/launch.json.
    """

    def __init__(self, root: Optional[Path]):
        self._root = str(Path(root).resolve()) if root is not None else None
        self._open: List[str] = []
        self._active: Optional[str] = None
        self._selection: Optional[Tuple[int, int]] = None
        self._breakpoints: List[Breakpoint] = []

    def root_path(self) -> Optional[str]:
        return self._root

    def active_file(self) -> Optional[str]:
        return self._active

    def open_files(self) -> List[str]:
        return list(self._open)

    def open_file(self, absolute_path: str) -> None:
        if not os.path.isfile(absolute_path):
            raise FileNotFoundError(f"File does not exist: {absolute_path}")
        if absolute_path not in self._open:
            self._open.append(absolute_path)
        if self._active != absolute_path:
            self._selection = None
        self._active = absolute_path
        log.info("opened %s in editor", absolute_path)

    def selection(self) -> Optional[Tuple[int, int]]:
        return self._selection

    def set_selection(self, start: int, end: int) -> None:
        if self._active is None:
            raise WorkspaceError("No active editor")
        if start < 0 or end < start:
            raise ValueError(f"Invalid selection: {start}..{end}")
        self._selection = (start, end)

    def toggle_breakpoint(self, absolute_path: str, line: int) -> bool:
        """Returns True when a breakpoint was added, False when one was removed."""
        bp = Breakpoint(absolute_path, line)
        if bp in self._breakpoints:
            self._breakpoints.remove(bp)
            return False
        self._breakpoints.append(bp)
        return True

    def breakpoints(self) -> List[Breakpoint]:
        return list(self._breakpoints)

    def run_configurations(self) -> List[Dict[str, Any]]:
        if self._root is None:
            return []
        path = os.path.join(self._root, LAUNCH_CONFIG)
        if not os.path.isfile(path):
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise WorkspaceError(f"Cannot read {LAUNCH_CONFIG}: {e}") from e
        configs = data.get("configurations", []) if isinstance(data, dict) else []
        return [c for c in configs if isinstance(c, dict) and c.get("name")]

    def find_run_configuration(self, name: str) -> Optional[Dict[str, Any]]:
        for config in self.run_configurations():
            if config.get("name") == name:
                return config
        return None
