# ide_bridge/services/paths.py
from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Optional

_DRIVE_RE = re.compile(r"^[A-Za-z]:/")
_ROOT_ALIASES = {"", ".", "/", "./"}


class PathOutsideProjectError(PermissionError):
    """Raised when a user-supplied path does not resolve inside the project root."""

    def __init__(self, raw_path: str):
        super().__init__(f"Path is outside project directory: {raw_path}")
        self.raw_path = raw_path


@dataclass(frozen=True)
class PathResolution:
    relative_path: str
    absolute_path: Optional[str]
    is_safe: bool


def normalize_path(raw: str) -> str:
    """Unify separators to '/' and collapse '.'/'..' segments on the string form."""
    p = str(raw).replace("\\", "/")
    norm = posixpath.normpath(p)
    if norm != "/" and norm.endswith("/"):
        norm = norm.rstrip("/")
    return norm


def is_absolute(p: str) -> bool:
    return p.startswith("/") or bool(_DRIVE_RE.match(p))


def is_within(candidate: str, root: str) -> bool:
    if candidate == root:
        return True
    prefix = root if root.endswith("/") else root + "/"
    return candidate.startswith(prefix)


def resolve(raw_path: Optional[str], project_root: Optional[str]) -> PathResolution:
    """
    Confine `raw_path` to `project_root`.

    Works purely on strings: symlinks inside the root that point elsewhere are
    not followed, so they pass the check.
    """
    original = "" if raw_path is None else str(raw_path)
    if not project_root:
        return PathResolution(original, None, False)

    root = normalize_path(project_root)
    if original.strip() in _ROOT_ALIASES:
        return PathResolution("/", root, True)

    text = original.replace("\\", "/")
    if is_absolute(text):
        candidate = normalize_path(text)
    else:
        candidate = normalize_path(posixpath.join(root, text))

    if not is_within(candidate, root):
        return PathResolution(original, None, False)

    if candidate == root:
        return PathResolution("/", candidate, True)
    return PathResolution(posixpath.relpath(candidate, root), candidate, True)


class PathResolver:
    """Resolves tool path arguments against the workspace's current root."""

    def __init__(self, workspace):
        self.workspace = workspace

    @property
    def project_root(self) -> Optional[str]:
        return self.workspace.root_path()

    def resolve(self, raw_path: Optional[str]) -> PathResolution:
        return resolve(raw_path, self.project_root)

    def require(self, raw_path: Optional[str]) -> str:
        res = self.resolve(raw_path)
        if not res.is_safe or res.absolute_path is None:
            raise PathOutsideProjectError(str(raw_path))
        return res.absolute_path

    def relative_to_root(self, absolute_path: str) -> str:
        """Project-relative form of an absolute path; paths outside the root come back normalized."""
        root = self.project_root
        candidate = normalize_path(absolute_path)
        if not root:
            return candidate
        root = normalize_path(root)
        if not is_within(candidate, root):
            return candidate
        if candidate == root:
            return "/"
        return posixpath.relpath(candidate, root)
