# tests/test_tools.py
import json

import pytest

from ide_server.tools.debug import launch_command
from ide_server.tools.editor import NO_EDITOR
from ide_server.tools.terminal import OsCommandIn, os_type, pick_os_command


async def call(registry, name, **arguments):
    return await registry.get(name).handle(arguments)


async def test_editor_requires_an_open_file(registry):
    r = await call(registry, "get_open_in_editor_file_text")
    assert r.error == NO_EDITOR


async def test_open_and_edit_active_file(registry, container, tmp_path):
    (tmp_path / "main.py").write_text("print('hi')\n", encoding="utf-8")
    r = await call(registry, "open_file_in_editor", filePath="main.py")
    assert json.loads(r.status)["pathInProject"] == "main.py"

    r = await call(registry, "get_open_in_editor_file_path")
    assert json.loads(r.status)["path"] == str(tmp_path.resolve() / "main.py")

    await call(registry, "replace_current_file_text", text="x = 1\n")
    r = await call(registry, "get_open_in_editor_file_text")
    assert r.status == "x = 1\n"


async def test_replace_selected_text(registry, container, tmp_path):
    (tmp_path / "s.txt").write_text("hello world", encoding="utf-8")
    await call(registry, "open_file_in_editor", filePath="s.txt")
    assert (await call(registry, "replace_selected_text", text="x")).error == "No text is selected"

    container.workspace.set_selection(6, 11)
    r = await call(registry, "replace_selected_text", text="there")
    assert r.status == "ok"
    assert (tmp_path / "s.txt").read_text(encoding="utf-8") == "hello there"


async def test_open_file_outside_project_fails(registry):
    r = await call(registry, "open_file_in_editor", filePath="../outside.txt")
    assert "outside project directory" in r.error


async def test_breakpoints_toggle(registry, tmp_path):
    (tmp_path / "app.py").write_text("a\nb\n", encoding="utf-8")
    r = await call(registry, "toggle_debugger_breakpoint", pathInProject="app.py", line=2)
    assert json.loads(r.status)["action"] == "added"
    r = await call(registry, "get_debugger_breakpoints")
    assert json.loads(r.status) == [{"pathInProject": "app.py", "line": 2}]
    r = await call(registry, "toggle_debugger_breakpoint", pathInProject="app.py", line=2)
    assert json.loads(r.status)["action"] == "removed"


async def test_run_configurations_from_launch_json(registry, tmp_path):
    (tmp_path / ".vscode").mkdir()
    (tmp_path / ".vscode" / "launch.json").write_text(
        json.dumps({"configurations": [{"name": "App", "type": "python", "request": "launch", "program": "app.py"}, {}]}),
        encoding="utf-8",
    )
    r = await call(registry, "get_run_configurations")
    assert json.loads(r.status) == [{"name": "App", "type": "python", "request": "launch"}]
    r = await call(registry, "run_configuration", configName="Missing")
    assert r.error == "Run configuration not found: Missing"


def test_launch_command():
    assert launch_command({"command": "make run"}, "/w") == "make run"
    assert launch_command({"type": "node", "program": "${workspaceFolder}/a b.js"}, "/w") == "node '/w/a b.js'"
    assert launch_command({"type": "python"}, "/w") is None


async def test_file_tools_round_trip(registry, tmp_path):
    r = await call(registry, "create_new_file_with_text", pathInProject="src/a.txt", text="one\ntwo")
    assert json.loads(r.status) == {"pathInProject": "src/a.txt"}
    r = await call(registry, "create_new_file_with_text", pathInProject="src/a.txt", text="again")
    assert r.error.startswith("Error in create_new_file_with_text: File already exists")

    r = await call(registry, "replace_file_content_at_position", pathInProject="src/a.txt", startLine=3, endLine=3, content="x")
    assert r.error == "Invalid line numbers"

    r = await call(registry, "find_files_by_name_substring", nameSubstring="A.T")
    assert [f["path"] for f in json.loads(r.status)] == ["src/a.txt"]


async def test_terminal_tools(registry):
    r = await call(registry, "run_command_on_background", command="echo hi; exit 3")
    out = json.loads(r.status)
    assert out["stdout"].strip() == "hi"
    assert out["exitCode"] == 3

    r = await call(registry, "wait", milliseconds=1)
    assert json.loads(r.status)["status"] == "completed"

    r = await call(registry, "get_terminal_info")
    assert "osType" in json.loads(r.status)


async def test_project_tools(registry, tmp_path):
    (tmp_path / "pyproject.toml").write_text('[project]\nname = "x"\ndependencies = ["fastapi"]\n', encoding="utf-8")
    (tmp_path / "requirements-dev.txt").write_text("pytest  # tests\n-e .\n", encoding="utf-8")
    (tmp_path / "pkg").mkdir()
    (tmp_path / "node_modules").mkdir()

    r = await call(registry, "get_project_modules")
    assert json.loads(r.status) == {"types": ["python"], "modules": ["pkg"]}

    deps = json.loads((await call(registry, "get_project_dependencies")).status)
    assert deps[0]["dependencies"] == ["fastapi"]
    assert deps[1] == {"source": "requirements-dev.txt", "dependencies": ["pytest"]}


@pytest.mark.parametrize("ms", [-1, 600_001])
async def test_wait_bounds(registry, ms):
    r = await call(registry, "wait", milliseconds=ms)
    assert r.error.startswith("Invalid arguments for wait")


async def test_background_command_drops_cached_contents(registry, tmp_path):
    (tmp_path / "a.txt").write_text("A", encoding="utf-8")
    r = await call(registry, "get_file_text_by_path", pathInProject="a.txt")
    assert json.loads(r.status)["content"] == "A"

    await call(registry, "run_command_on_background", command="printf B > a.txt")
    r = await call(registry, "get_file_text_by_path", pathInProject="a.txt")
    assert json.loads(r.status)["content"] == "B"


async def test_timed_out_command_still_drops_cached_contents(registry, tmp_path):
    (tmp_path / "a.txt").write_text("A", encoding="utf-8")
    await call(registry, "get_file_text_by_path", pathInProject="a.txt")

    r = await call(registry, "run_command_on_background", command="printf C > a.txt; sleep 5", timeout=500)
    assert "timed out" in r.error
    r = await call(registry, "get_file_text_by_path", pathInProject="a.txt")
    assert json.loads(r.status)["content"] == "C"


async def test_spawned_commands_drop_cached_contents(registry, container, tmp_path):
    (tmp_path / "a.txt").write_text("A", encoding="utf-8")
    path = str(tmp_path.resolve() / "a.txt")

    await call(registry, "get_file_text_by_path", pathInProject="a.txt")
    await call(registry, "execute_terminal_command", command="true")
    assert not container.cache.is_cached(path)

    await call(registry, "get_file_text_by_path", pathInProject="a.txt")
    await call(registry, "execute_os_specific_command", command="true")
    assert not container.cache.is_cached(path)


@pytest.mark.parametrize(
    "os_name,expected",
    [("windows", "dir"), ("linux", "ls"), ("macos", "ls -G"), ("freebsd", "echo")],
)
def test_pick_os_command(os_name, expected):
    args = OsCommandIn(windowsCommand="dir", unixCommand="ls", macCommand="ls -G", command="echo")
    assert pick_os_command(os_name, args) == expected


def test_pick_os_command_falls_back():
    assert pick_os_command("macos", OsCommandIn(unixCommand="ls")) == "ls"
    assert pick_os_command("linux", OsCommandIn(command="echo")) == "echo"
    assert pick_os_command("linux", OsCommandIn(windowsCommand="dir")) is None


async def test_execute_os_specific_command(registry):
    r = await call(registry, "execute_os_specific_command")
    assert r.error == "No command specified"

    r = await call(registry, "execute_os_specific_command", command="true")
    out = json.loads(r.status)
    assert out == {"osType": os_type(), "command": "true", "executed": True}

    if os_type() != "windows":
        r = await call(registry, "execute_os_specific_command", windowsCommand="dir")
        assert r.error == f"No command specified for {os_type()} operating system"
