# ide_bridge/services/filesystem.py
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ide_bridge.services.cache import ContentCache
from ide_bridge.services.paths import PathResolver

log = logging.getLogger(__name__)

BINARY_EXTENSIONS = {
    ".exe", ".dll", ".so", ".dylib", ".bin", ".dat", ".zip", ".rar", ".7z", ".tar", ".gz",
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".ico", ".tiff", ".webp",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    ".mp3", ".mp4", ".wav", ".avi", ".mov", ".mkv", ".pyc",
}
SEARCH_CONCURRENCY = 20


def is_probably_binary(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in BINARY_EXTENSIONS


def _write(path: str, content: str) -> None:
    Path(path).write_text(content, encoding="utf-8")


class FileSystemService:
    """
    File operations confined to the project root.

    Every write goes through here so the content cache entry for the path is
    dropped before the write is reported as done.
    """

    def __init__(
        self,
        resolver: PathResolver,
        cache: ContentCache,
        excluded_dirs: Iterable[str] = (),
        max_search_files: int = 1000,
    ):
        self.resolver = resolver
        self.cache = cache
        self.excluded_dirs = set(excluded_dirs)
        self.max_search_files = max_search_files

    def _resolve_in_root(self, raw_path: str) -> str:
        return self.resolver.require(raw_path)

    def relative(self, absolute_path: str) -> str:
        return self.resolver.relative_to_root(absolute_path)

    def project_path(self, raw_path: str) -> str:
        return self.relative(self._resolve_in_root(raw_path))

    # ---------- Read / write ----------

    async def read_text(self, raw_path: str, use_cache: bool = True) -> str:
        p = self._resolve_in_root(raw_path)
        return await self.cache.get_file_content(p, use_cache=use_cache)

    async def write_text(self, raw_path: str, content: str, must_exist: Optional[bool] = None) -> str:
        """
        Write `content`; `must_exist=True` requires an existing file, `False`
        requires a new one (parents are created), `None` accepts either.
        """
        p = self._resolve_in_root(raw_path)
        exists = await asyncio.to_thread(os.path.exists, p)
        if must_exist is True and not exists:
            raise FileNotFoundError(f"File does not exist: {self.relative(p)}")
        if must_exist is False and exists:
            raise FileExistsError(f"File already exists: {self.relative(p)}")
        try:
            if not exists:
                await asyncio.to_thread(os.makedirs, os.path.dirname(p), exist_ok=True)
            await asyncio.to_thread(_write, p, content)
        finally:
            self.cache.invalidate(p)
        log.info("wrote %s (%d chars)", p, len(content))
        return p

    async def append_text(self, raw_path: str, content: str) -> int:
        p = self._resolve_in_root(raw_path)
        if not await asyncio.to_thread(os.path.isfile, p):
            raise FileNotFoundError(f"File does not exist: {self.relative(p)}")
        existing = await self.cache.get_file_content(p, use_cache=False)
        new_content = existing + content
        await self.write_text(p, new_content, must_exist=True)
        return len(new_content)

    async def replace_lines(
        self, raw_path: str, start_line: int, end_line: int, content: str, offset: int = 0
    ) -> None:
        """
        Replace lines `start_line`..`end_line` (1-based, inclusive).

        On a single line, `content` overwrites `len(content)` characters
        starting at `offset`; across lines, the range is replaced by the lines
        of `content`.
        """
        p = self._resolve_in_root(raw_path)
        current = await self.cache.get_file_content(p, use_cache=False)
        lines = current.split("\n")

        if start_line < 1 or end_line > len(lines) or start_line > end_line:
            raise ValueError("Invalid line numbers")
        if offset < 0:
            raise ValueError("Offset must not be negative")

        start, end = start_line - 1, end_line - 1
        if start == end:
            line = lines[start]
            lines[start] = line[:offset] + content + line[offset + len(content):]
        else:
            lines[start:end + 1] = content.split("\n")

        await self.write_text(p, "\n".join(lines), must_exist=True)

    # ---------- Listing / search ----------

    async def list_dir(self, raw_path: str) -> List[Dict[str, str]]:
        p = self._resolve_in_root(raw_path)
        if not await asyncio.to_thread(os.path.isdir, p):
            raise NotADirectoryError(f"Path is not a directory: {self.relative(p)}")

        def _scan() -> List[Dict[str, str]]:
            with os.scandir(p) as it:
                return [
                    {
                        "name": entry.name,
                        "type": "directory" if entry.is_dir() else "file",
                        "pathInProject": self.relative(os.path.join(p, entry.name)),
                    }
                    for entry in it
                ]

        entries = await asyncio.to_thread(_scan)
        entries.sort(key=lambda e: (e["type"] != "directory", e["name"].lower()))
        return entries

    def _project_files(self) -> List[str]:
        root = self.resolver.project_root
        if not root:
            return []
        files: List[str] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in self.excluded_dirs)
            for name in sorted(filenames):
                files.append(os.path.join(dirpath, name))
                if len(files) >= self.max_search_files:
                    return files
        return files

    async def find_by_name(self, name_substring: str) -> List[Dict[str, str]]:
        if not name_substring:
            raise ValueError("Search string cannot be empty")
        needle = name_substring.lower()
        files = await asyncio.to_thread(self._project_files)
        return [
            {
                "path": self.relative(f),
                "name": os.path.basename(f),
                "directory": self.relative(os.path.dirname(f)),
                "absolutePath": f,
            }
            for f in files
            if needle in os.path.basename(f).lower()
        ]

    async def search_content(self, search_text: str) -> List[Dict[str, Any]]:
        if not search_text:
            raise ValueError("Search text cannot be empty")
        files = await asyncio.to_thread(self._project_files)
        sem = asyncio.Semaphore(SEARCH_CONCURRENCY)

        async def _check(path: str) -> Optional[str]:
            if is_probably_binary(path):
                return None
            async with sem:
                try:
                    text = await self.cache.get_file_content(path)
                except (OSError, UnicodeDecodeError) as e:
                    log.debug("skipping %s: %s", path, e)
                    return None
            return path if search_text in text else None

        found = await asyncio.gather(*(_check(f) for f in files))
        return [{"path": self.relative(f), "absolutePath": f} for f in found if f]
