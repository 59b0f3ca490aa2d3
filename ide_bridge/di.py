# ide_bridge/di.py
from dataclasses import dataclass
from typing import Optional

from ide_bridge.config import Settings
from ide_bridge.services.cache import ContentCache
from ide_bridge.services.filesystem import FileSystemService
from ide_bridge.services.git import GitService
from ide_bridge.services.paths import PathResolver
from ide_bridge.services.runner import CommandRunner
from ide_bridge.services.status import StatusReporter
from ide_bridge.services.workspace import LocalWorkspace


@dataclass
class Container:
    settings: Settings
    workspace: LocalWorkspace
    resolver: PathResolver
    cache: ContentCache
    fs_service: FileSystemService
    runner: CommandRunner
    git_service: GitService
    status: StatusReporter


def build_container(settings: Optional[Settings] = None, workspace: Optional[LocalWorkspace] = None) -> Container:
    s = settings or Settings()
    ws = workspace or LocalWorkspace(s.PROJECT_ROOT)

    resolver = PathResolver(ws)
    cache = ContentCache(max_file_chars=s.CACHE_MAX_FILE_CHARS)
    fs = FileSystemService(
        resolver,
        cache,
        excluded_dirs=s.excluded_dirs,
        max_search_files=s.SEARCH_MAX_FILES,
    )

    runner = CommandRunner(
        timeout_sec=s.COMMAND_TIMEOUT_SEC,
        max_lines=s.COMMAND_OUTPUT_MAX_LINES,
        max_bytes=s.COMMAND_OUTPUT_MAX_BYTES,
    )
    git = GitService(runner, ws)

    return Container(s, ws, resolver, cache, fs, runner, git, StatusReporter())
