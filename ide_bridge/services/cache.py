# ide_bridge/services/cache.py
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional, Tuple

log = logging.getLogger(__name__)

Reader = Callable[[str], Awaitable[str]]


async def read_text_file(path: str) -> str:
    return await asyncio.to_thread(Path(path).read_text, encoding="utf-8")


class ContentCache:
    """
    Process-wide text cache keyed by absolute path.

    Entries have no expiry; they live until invalidated by a write made through
    this process, or until `clear()`. A read that was in flight while its path
    was invalidated returns its text but does not store it.
    """

    def __init__(self, reader: Optional[Reader] = None, max_file_chars: int = 5 * 1024 * 1024):
        self._reader: Reader = reader or read_text_file
        self.max_file_chars = max_file_chars
        self._entries: Dict[str, str] = {}
        # Invalidation counters, kept only while a read of the path is in flight
        self._generations: Dict[str, int] = {}
        self._pending: Dict[str, int] = {}
        self._epoch = 0

    async def get_file_content(self, absolute_path: str, use_cache: bool = True) -> str:
        if not use_cache:
            return await self._reader(absolute_path)

        cached = self._entries.get(absolute_path)
        if cached is not None:
            log.debug("cache hit %s", absolute_path)
            return cached

        generation = self._generation(absolute_path)
        self._pending[absolute_path] = self._pending.get(absolute_path, 0) + 1
        try:
            text = await self._reader(absolute_path)
            stale = self._generation(absolute_path) != generation
        finally:
            self._release_pending(absolute_path)

        if stale:
            log.debug("cache entry for %s invalidated during read; not storing", absolute_path)
        elif len(text) > self.max_file_chars:
            log.info("file too large to cache: %s (%d chars)", absolute_path, len(text))
        else:
            self._entries[absolute_path] = text
        return text

    def _generation(self, absolute_path: str) -> Tuple[int, int]:
        return self._epoch, self._generations.get(absolute_path, 0)

    def _release_pending(self, absolute_path: str) -> None:
        left = self._pending.get(absolute_path, 0) - 1
        if left > 0:
            self._pending[absolute_path] = left
        else:
            self._pending.pop(absolute_path, None)
            self._generations.pop(absolute_path, None)

    def invalidate(self, absolute_path: str) -> None:
        if absolute_path in self._pending:
            self._generations[absolute_path] = self._generations.get(absolute_path, 0) + 1
        if self._entries.pop(absolute_path, None) is not None:
            log.debug("invalidated cache for %s", absolute_path)

    # Same operation under the name callers use after deleting/overwriting a file
    delete = invalidate

    def clear(self) -> None:
        log.info("clearing content cache with %d entries", len(self._entries))
        self._epoch += 1
        self._entries.clear()
        self._generations.clear()

    def is_cached(self, absolute_path: str) -> bool:
        return absolute_path in self._entries

    def info(self) -> Dict[str, int]:
        return {
            "entries": len(self._entries),
            "size": sum(len(v) for v in self._entries.values()),
        }
