# ide_server/tools/files.py
from pydantic import BaseModel, Field

from ide_bridge.services.filesystem import FileSystemService
from ide_server.envelope import failure, success
from ide_server.registry import Tool, ToolRegistry


class FilePathIn(BaseModel):
    pathInProject: str = Field(..., description="Path relative to the project root")


class FileTextIn(BaseModel):
    pathInProject: str = Field(..., description="Path relative to the project root")
    text: str = Field(..., description="UTF-8 text content to write")


class FileAppendIn(BaseModel):
    pathInProject: str = Field(..., description="Path relative to the project root")
    content: str = Field(..., description="Text appended to the end of the file")


class ReplaceAtPositionIn(BaseModel):
    pathInProject: str = Field(..., description="Path relative to the project root")
    startLine: int = Field(..., description="First line to replace (1-based)")
    endLine: int = Field(..., description="Last line to replace (1-based, inclusive)")
    content: str = Field(..., description="Replacement text")
    offset: int = Field(0, ge=0, description="Character offset within the line (single-line replacement only)")


class NameSubstringIn(BaseModel):
    nameSubstring: str = Field(..., description="Substring to look for in file names")


class SearchTextIn(BaseModel):
    searchText: str = Field(..., description="Text to search for in file contents")


def register_file_tools(registry: ToolRegistry, fs_service: FileSystemService):
    """
    Very thin tool adapters:
    - validate/deserialize inputs (Pydantic)
    - call the service (business logic + sandboxing + cache invalidation)
    - shape the result
    """

    async def get_file_text_by_path(args: FilePathIn):
        text = await fs_service.read_text(args.pathInProject)
        return success({"content": text, "pathInProject": fs_service.project_path(args.pathInProject)})

    async def replace_file_text_by_path(args: FileTextIn):
        p = await fs_service.write_text(args.pathInProject, args.text, must_exist=True)
        return success({"pathInProject": fs_service.relative(p), "size": len(args.text)})

    async def create_new_file_with_text(args: FileTextIn):
        p = await fs_service.write_text(args.pathInProject, args.text, must_exist=False)
        return success({"pathInProject": fs_service.relative(p)})

    async def append_file_content(args: FileAppendIn):
        size = await fs_service.append_text(args.pathInProject, args.content)
        return success({"pathInProject": fs_service.project_path(args.pathInProject), "size": size})

    async def replace_file_content_at_position(args: ReplaceAtPositionIn):
        try:
            await fs_service.replace_lines(
                args.pathInProject, args.startLine, args.endLine, args.content, args.offset
            )
        except ValueError as e:
            return failure(str(e))
        return success("ok")

    async def list_files_in_folder(args: FilePathIn):
        return success(await fs_service.list_dir(args.pathInProject))

    async def find_files_by_name_substring(args: NameSubstringIn):
        if not args.nameSubstring:
            return failure("Search string cannot be empty")
        return success(await fs_service.find_by_name(args.nameSubstring))

    async def search_in_files_content(args: SearchTextIn):
        if not args.searchText:
            return failure("Search text cannot be empty")
        return success(await fs_service.search_content(args.searchText))

    for tool in (
        Tool(
            name="get_file_text_by_path",
            description="Get the text content of a file using its path relative to the project root. "
            "Returns an error if the file does not exist or is outside the project scope.",
            input_model=FilePathIn,
            handler=get_file_text_by_path,
        ),
        Tool(
            name="replace_file_text_by_path",
            description="Replace the entire content of a specified project file with new text. "
            "Returns an error if the file does not exist or cannot be accessed.",
            input_model=FileTextIn,
            handler=replace_file_text_by_path,
        ),
        Tool(
            name="create_new_file_with_text",
            description="Create a new file at the specified path in the project directory and populate it with content.",
            input_model=FileTextIn,
            handler=create_new_file_with_text,
        ),
        Tool(
            name="append_file_content",
            description="Append content to the end of a file. Returns an error if the file does not exist.",
            input_model=FileAppendIn,
            handler=append_file_content,
        ),
        Tool(
            name="replace_file_content_at_position",
            description="Replace a portion of file content between line positions, optionally at a "
            "character offset within a single line. The rest of the file is left unchanged.",
            input_model=ReplaceAtPositionIn,
            handler=replace_file_content_at_position,
        ),
        Tool(
            name="list_files_in_folder",
            description="List all files and directories in the specified project folder.",
            input_model=FilePathIn,
            handler=list_files_in_folder,
        ),
        Tool(
            name="find_files_by_name_substring",
            description="Search for all files in the project whose names contain the specified substring.",
            input_model=NameSubstringIn,
            handler=find_files_by_name_substring,
        ),
        Tool(
            name="search_in_files_content",
            description="Search for a text substring within all files in the project. "
            "Returns the files containing a match.",
            input_model=SearchTextIn,
            handler=search_in_files_content,
        ),
    ):
        registry.register(tool)
