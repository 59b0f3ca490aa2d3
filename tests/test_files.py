# tests/test_files.py
import os

import pytest


async def test_fs_sandbox_prevents_escape(container):
    fs = container.fs_service
    await fs.write_text("ok.txt", "ok")
    assert await fs.read_text("ok.txt") == "ok"
    with pytest.raises(PermissionError):
        await fs.read_text("../escape.txt")
    with pytest.raises(PermissionError):
        await fs.write_text("/etc/escape.txt", "x")


async def test_write_invalidates_cached_content(container, root):
    fs = container.fs_service
    await fs.write_text("a.txt", "v1")
    assert await fs.read_text("a.txt") == "v1"
    assert container.cache.is_cached(os.path.join(root, "a.txt"))

    await fs.write_text("a.txt", "v2", must_exist=True)
    assert not container.cache.is_cached(os.path.join(root, "a.txt"))
    assert await fs.read_text("a.txt") == "v2"


async def test_create_and_replace_preconditions(container, root):
    fs = container.fs_service
    p = await fs.write_text("nested/dir/new.txt", "x", must_exist=False)
    assert p == os.path.join(root, "nested", "dir", "new.txt")
    with pytest.raises(FileExistsError):
        await fs.write_text("nested/dir/new.txt", "y", must_exist=False)
    with pytest.raises(FileNotFoundError):
        await fs.write_text("missing.txt", "y", must_exist=True)


async def test_append_returns_new_size(container):
    fs = container.fs_service
    await fs.write_text("log.txt", "abc")
    await fs.read_text("log.txt")
    assert await fs.append_text("log.txt", "de") == 5
    assert await fs.read_text("log.txt") == "abcde"
    with pytest.raises(FileNotFoundError):
        await fs.append_text("nope.txt", "x")


async def test_replace_lines_single_line_at_offset(container):
    fs = container.fs_service
    await fs.write_text("f.txt", "first\nhello world\nlast")
    await fs.replace_lines("f.txt", 2, 2, "THERE", offset=6)
    assert await fs.read_text("f.txt") == "first\nhello THERE\nlast"


async def test_replace_lines_range(container):
    fs = container.fs_service
    await fs.write_text("f.txt", "a\nb\nc\nd")
    await fs.replace_lines("f.txt", 2, 3, "X\nY\nZ")
    assert await fs.read_text("f.txt") == "a\nX\nY\nZ\nd"


@pytest.mark.parametrize("start,end", [(0, 1), (2, 1), (1, 9)])
async def test_replace_lines_rejects_bad_ranges(container, start, end):
    fs = container.fs_service
    await fs.write_text("f.txt", "a\nb")
    with pytest.raises(ValueError, match="Invalid line numbers"):
        await fs.replace_lines("f.txt", start, end, "x")


async def test_list_dir_puts_directories_first(container):
    fs = container.fs_service
    await fs.write_text("b.txt", "")
    await fs.write_text("A.txt", "")
    await fs.write_text("zdir/inner.txt", "")
    entries = await fs.list_dir("/")
    assert [e["name"] for e in entries] == ["zdir", "A.txt", "b.txt"]
    assert entries[0] == {"name": "zdir", "type": "directory", "pathInProject": "zdir"}
    with pytest.raises(NotADirectoryError):
        await fs.list_dir("b.txt")


async def test_find_by_name_skips_excluded_dirs(container):
    fs = container.fs_service
    await fs.write_text("src/Index.ts", "")
    await fs.write_text("node_modules/pkg/index.ts", "")
    found = await fs.find_by_name("index")
    assert [f["path"] for f in found] == ["src/Index.ts"]
    assert found[0]["directory"] == "src"
    with pytest.raises(ValueError):
        await fs.find_by_name("")


async def test_search_content_skips_binary_files(container):
    fs = container.fs_service
    await fs.write_text("a.py", "needle = 1")
    await fs.write_text("b.py", "nothing")
    await fs.write_text("img.png", "needle")
    found = await fs.search_content("needle")
    assert [f["path"] for f in found] == ["a.py"]
