# ide_bridge/services/git.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ide_bridge.services.runner import CommandResult, CommandRunner

log = logging.getLogger(__name__)

_STATUS_CODES = {
    "M": "MODIFIED",
    "A": "ADDED",
    "D": "DELETED",
    "R": "RENAMED",
    "C": "COPIED",
    "T": "MODIFIED",
}
_CONFLICT_PAIRS = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"


class GitError(RuntimeError):
    pass


def _ref(value: str) -> str:
    if not value or value.startswith("-"):
        raise GitError(f"Invalid revision or branch name: {value!r}")
    return value


def classify_status(xy: str) -> str:
    if xy == "??":
        return "UNTRACKED"
    if xy == "!!":
        return "IGNORED"
    if xy in _CONFLICT_PAIRS:
        return "CONFLICTED"
    for code in xy:
        if code in _STATUS_CODES:
            return _STATUS_CODES[code]
    return xy.strip() or "UNKNOWN"


def parse_porcelain(stdout: str) -> List[Dict[str, str]]:
    changes = []
    for line in stdout.splitlines():
        if len(line) < 4:
            continue
        xy, path = line[:2], line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        changes.append({"path": path.strip('"'), "type": classify_status(xy)})
    return changes


class GitService:
    """Git operations for the workspace repository, run through the git CLI."""

    def __init__(self, runner: CommandRunner, workspace):
        self.runner = runner
        self.workspace = workspace

    def _root(self) -> str:
        root = self.workspace.root_path()
        if not root:
            raise GitError("No workspace folder found")
        return root

    async def _git(self, *args: str, check: bool = True) -> CommandResult:
        try:
            result = await self.runner.exec(["git", *args], cwd=self._root())
        except FileNotFoundError as e:
            raise GitError("git executable not found") from e
        if check and result.exit_code != 0:
            message = (result.stderr or result.stdout).strip() or f"exit code {result.exit_code}"
            raise GitError(f"git {args[0]} failed: {message}")
        return result

    async def ensure_repository(self) -> None:
        result = await self._git("rev-parse", "--is-inside-work-tree", check=False)
        if result.exit_code != 0 or result.stdout.strip() != "true":
            raise GitError("No Git repository found")

    async def status(self) -> List[Dict[str, str]]:
        await self.ensure_repository()
        result = await self._git("status", "--porcelain")
        return parse_porcelain(result.stdout)

    async def find_commits(self, text: str, limit: int = 10) -> List[str]:
        await self.ensure_repository()
        result = await self._git("log", f"--grep={text}", "--format=%H", "-n", str(limit), check=False)
        if result.exit_code != 0:
            log.warning("git log failed (%s): %s", result.exit_code, result.stderr.strip())
            return []
        return [line for line in result.stdout.splitlines() if line.strip()]

    async def file_history(self, path_in_project: str, max_count: int = 10) -> List[Dict[str, str]]:
        await self.ensure_repository()
        fmt = _FIELD_SEP.join(["%H", "%an", "%ad", "%s"])
        result = await self._git(
            "log", f"--max-count={max_count}", f"--format={fmt}", "--date=short", "--", path_in_project
        )
        commits = []
        for line in result.stdout.splitlines():
            parts = line.split(_FIELD_SEP)
            if len(parts) == 4:
                commits.append({"hash": parts[0], "author": parts[1], "date": parts[2], "message": parts[3]})
        return commits

    async def file_diff(self, path_in_project: str, hash1: Optional[str] = None, hash2: Optional[str] = None) -> str:
        await self.ensure_repository()
        revs = [_ref(h) for h in (hash1, hash2) if h]
        if hash2 and not hash1:
            raise GitError("hash2 requires hash1")
        result = await self._git("diff", *revs, "--", path_in_project)
        return result.stdout

    async def current_branch(self) -> str:
        result = await self._git("rev-parse", "--abbrev-ref", "HEAD")
        return result.stdout.strip()

    async def branch_info(self) -> Dict[str, Any]:
        await self.ensure_repository()
        local = await self._git("branch", "--format=%(refname:short)")
        remote = await self._git("branch", "-r", "--format=%(refname:short)")
        return {
            "currentBranch": await self.current_branch(),
            "localBranches": [b for b in local.stdout.splitlines() if b.strip()],
            "remoteBranches": [b for b in remote.stdout.splitlines() if b.strip()],
        }

    async def commit_details(self, commit_hash: str) -> Dict[str, Any]:
        await self.ensure_repository()
        fmt = _FIELD_SEP.join(["%H", "%an", "%ae", "%ad", "%s", "%b"]) + _RECORD_SEP
        result = await self._git("show", "--name-status", f"--format={fmt}", "--date=iso", _ref(commit_hash))
        header, _, files_part = result.stdout.partition(_RECORD_SEP)
        fields = header.split(_FIELD_SEP)
        if len(fields) < 6:
            raise GitError(f"Unexpected git show output for {commit_hash}")

        files = []
        for line in files_part.splitlines():
            parts = line.split("\t")
            if len(parts) >= 2 and parts[0]:
                files.append({"status": classify_status(parts[0][0]), "path": parts[-1]})

        return {
            "hash": fields[0],
            "author": fields[1],
            "email": fields[2],
            "date": fields[3],
            "subject": fields[4],
            "body": fields[5].strip(),
            "files": files,
        }

    async def commit(self, message: str, amend: bool = False) -> Dict[str, Any]:
        await self.ensure_repository()
        pending = await self._git("status", "--porcelain")
        if not pending.stdout.strip() and not amend:
            raise GitError("No changes to commit")
        if pending.stdout.strip():
            await self._git("add", "-A")
        args = ["commit", "-m", message]
        if amend:
            args.insert(1, "--amend")
        await self._git(*args)
        head = await self._git("rev-parse", "HEAD")
        return {"hash": head.stdout.strip(), "message": message, "amend": amend}

    async def pull(self, remote: str = "origin", branch: Optional[str] = None) -> Dict[str, Any]:
        await self.ensure_repository()
        args = ["pull", _ref(remote)] + ([_ref(branch)] if branch else [])
        result = await self._git(*args)
        return {"remote": remote, "branch": branch, "output": result.stdout.strip()}

    async def switch_branch(self, branch: str) -> Dict[str, Any]:
        await self.ensure_repository()
        await self._git("checkout", _ref(branch))
        return {"branch": await self.current_branch()}

    async def create_branch(self, branch: str, start_point: Optional[str] = None) -> Dict[str, Any]:
        await self.ensure_repository()
        args = ["checkout", "-b", _ref(branch)] + ([_ref(start_point)] if start_point else [])
        await self._git(*args)
        return {"branch": branch, "startPoint": start_point}
