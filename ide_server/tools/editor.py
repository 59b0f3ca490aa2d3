# ide_server/tools/editor.py
from pydantic import BaseModel, Field

from ide_bridge.services.filesystem import FileSystemService
from ide_server.envelope import failure, success
from ide_server.registry import Tool, ToolRegistry

NO_EDITOR = "No file is open in the editor"


class NoArgsIn(BaseModel):
    pass


class TextIn(BaseModel):
    text: str = Field(..., description="Replacement text")


class OpenFileIn(BaseModel):
    filePath: str = Field(..., description="Path of the file to open (project-relative or absolute inside the project)")


def register_editor_tools(registry: ToolRegistry, workspace, fs_service: FileSystemService):
    async def get_open_in_editor_file_path(args: NoArgsIn):
        active = workspace.active_file()
        if not active:
            return failure(NO_EDITOR)
        return success({"path": active, "pathInProject": fs_service.relative(active)})

    async def get_open_in_editor_file_text(args: NoArgsIn):
        active = workspace.active_file()
        if not active:
            return failure(NO_EDITOR)
        return success(await fs_service.read_text(active))

    async def open_file_in_editor(args: OpenFileIn):
        p = fs_service.resolver.require(args.filePath)
        workspace.open_file(p)
        return success({"pathInProject": fs_service.relative(p), "opened": True})

    async def replace_current_file_text(args: TextIn):
        active = workspace.active_file()
        if not active:
            return failure(NO_EDITOR)
        await fs_service.write_text(active, args.text, must_exist=True)
        return success("ok")

    async def replace_selected_text(args: TextIn):
        active = workspace.active_file()
        if not active:
            return failure(NO_EDITOR)
        selection = workspace.selection()
        if selection is None:
            return failure("No text is selected")
        start, end = selection
        current = await fs_service.read_text(active, use_cache=False)
        if end > len(current):
            return failure("Selection is outside the document")
        await fs_service.write_text(active, current[:start] + args.text + current[end:], must_exist=True)
        workspace.set_selection(start, start + len(args.text))
        return success("ok")

    for tool in (
        Tool(
            name="get_open_in_editor_file_path",
            description="Get the absolute and project-relative path of the file currently open in the editor.",
            input_model=NoArgsIn,
            handler=get_open_in_editor_file_path,
        ),
        Tool(
            name="get_open_in_editor_file_text",
            description="Get the full text of the file currently open in the editor.",
            input_model=NoArgsIn,
            handler=get_open_in_editor_file_text,
        ),
        Tool(
            name="open_file_in_editor",
            description="Open a project file in the editor and make it the active document.",
            input_model=OpenFileIn,
            handler=open_file_in_editor,
        ),
        Tool(
            name="replace_current_file_text",
            description="Replace the entire content of the file currently open in the editor.",
            input_model=TextIn,
            handler=replace_current_file_text,
        ),
        Tool(
            name="replace_selected_text",
            description="Replace the currently selected text in the active editor.",
            input_model=TextIn,
            handler=replace_selected_text,
        ),
    ):
        registry.register(tool)
