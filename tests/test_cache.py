# tests/test_cache.py
import asyncio

from ide_bridge.services.cache import ContentCache


class CountingReader:
    def __init__(self, files):
        self.files = files
        self.reads = 0

    async def __call__(self, path):
        self.reads += 1
        return self.files[path]


async def test_second_read_is_served_from_cache():
    reader = CountingReader({"/p/a.txt": "hello"})
    cache = ContentCache(reader=reader)
    assert await cache.get_file_content("/p/a.txt") == "hello"
    assert await cache.get_file_content("/p/a.txt") == "hello"
    assert reader.reads == 1
    assert cache.info() == {"entries": 1, "size": 5}


async def test_bypass_reads_fresh_and_does_not_store():
    reader = CountingReader({"/p/a.txt": "hello"})
    cache = ContentCache(reader=reader)
    await cache.get_file_content("/p/a.txt", use_cache=False)
    await cache.get_file_content("/p/a.txt", use_cache=False)
    assert reader.reads == 2
    assert not cache.is_cached("/p/a.txt")


async def test_invalidate_drops_stale_entry():
    files = {"/p/a.txt": "v1"}
    cache = ContentCache(reader=CountingReader(files))
    await cache.get_file_content("/p/a.txt")
    files["/p/a.txt"] = "v2"
    assert await cache.get_file_content("/p/a.txt") == "v1"
    cache.invalidate("/p/a.txt")
    assert await cache.get_file_content("/p/a.txt") == "v2"


async def test_read_in_flight_during_invalidation_is_not_stored():
    started, release = asyncio.Event(), asyncio.Event()

    async def slow_reader(path):
        started.set()
        await release.wait()
        return "old"

    cache = ContentCache(reader=slow_reader)
    task = asyncio.create_task(cache.get_file_content("/p/a.txt"))
    await started.wait()
    cache.invalidate("/p/a.txt")
    release.set()
    assert await task == "old"
    assert not cache.is_cached("/p/a.txt")


async def test_read_in_flight_during_clear_is_not_stored():
    started, release = asyncio.Event(), asyncio.Event()

    async def slow_reader(path):
        started.set()
        await release.wait()
        return "old"

    cache = ContentCache(reader=slow_reader)
    task = asyncio.create_task(cache.get_file_content("/p/b.txt"))
    await started.wait()
    cache.clear()
    release.set()
    await task
    assert cache.info()["entries"] == 0


async def test_large_files_are_not_cached():
    reader = CountingReader({"/p/big.txt": "x" * 10})
    cache = ContentCache(reader=reader, max_file_chars=4)
    await cache.get_file_content("/p/big.txt")
    await cache.get_file_content("/p/big.txt")
    assert reader.reads == 2


async def test_invalidation_bookkeeping_does_not_grow():
    files = {f"/p/{i}.txt": "x" for i in range(50)}
    cache = ContentCache(reader=CountingReader(files))
    for path in files:
        await cache.get_file_content(path)
        cache.invalidate(path)
    assert cache._generations == {}
    assert cache._pending == {}

    started, release = asyncio.Event(), asyncio.Event()

    async def slow_reader(path):
        started.set()
        await release.wait()
        return "old"

    cache = ContentCache(reader=slow_reader)
    task = asyncio.create_task(cache.get_file_content("/p/a.txt"))
    await started.wait()
    cache.invalidate("/p/a.txt")
    cache.clear()
    assert cache._generations == {}
    release.set()
    await task
    assert not cache.is_cached("/p/a.txt")
    assert cache._pending == {}
