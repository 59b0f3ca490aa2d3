# ide_server/tools/git.py
from typing import Optional

from pydantic import BaseModel, Field

from ide_bridge.services.filesystem import FileSystemService
from ide_bridge.services.git import GitService
from ide_server.envelope import success
from ide_server.registry import Tool, ToolRegistry


class NoArgsIn(BaseModel):
    pass


class CommitSearchIn(BaseModel):
    text: str = Field(..., min_length=1, description="Text or keywords to look for in commit messages")


class FileHistoryIn(BaseModel):
    pathInProject: str = Field(..., description="Path relative to the project root")
    maxCount: int = Field(10, ge=1, le=500, description="Maximum number of commits")


class FileDiffIn(BaseModel):
    pathInProject: str = Field(..., description="Path relative to the project root")
    hash1: Optional[str] = Field(None, description="Base revision; working tree vs index when omitted")
    hash2: Optional[str] = Field(None, description="Target revision; requires hash1")


class CommitHashIn(BaseModel):
    hash: str = Field(..., min_length=1, description="Commit hash or revision")


class CommitIn(BaseModel):
    message: str = Field(..., min_length=1, description="Commit message")
    amend: bool = Field(False, description="Amend the previous commit")


class PullIn(BaseModel):
    remote: str = Field("origin", description="Remote name")
    branch: Optional[str] = Field(None, description="Branch to pull; the tracking branch when omitted")


class BranchIn(BaseModel):
    branch: str = Field(..., min_length=1, description="Branch name")


class CreateBranchIn(BaseModel):
    branch: str = Field(..., min_length=1, description="New branch name")
    startPoint: Optional[str] = Field(None, description="Revision to branch from")


def register_git_tools(registry: ToolRegistry, git_service: GitService, fs_service: FileSystemService):
    async def get_project_vcs_status(args: NoArgsIn):
        return success(await git_service.status())

    async def find_commit_by_message(args: CommitSearchIn):
        return success(await git_service.find_commits(args.text))

    async def get_file_history(args: FileHistoryIn):
        rel = fs_service.project_path(args.pathInProject)
        commits = await git_service.file_history(rel, args.maxCount)
        return success({"pathInProject": rel, "commits": commits})

    async def get_file_diff(args: FileDiffIn):
        rel = fs_service.project_path(args.pathInProject)
        diff = await git_service.file_diff(rel, args.hash1, args.hash2)
        return success({"pathInProject": rel, "diff": diff})

    async def get_branch_info(args: NoArgsIn):
        return success(await git_service.branch_info())

    async def get_commit_details(args: CommitHashIn):
        return success(await git_service.commit_details(args.hash))

    async def commit_changes(args: CommitIn):
        out = await git_service.commit(args.message, amend=args.amend)
        return success(out)

    async def pull_changes(args: PullIn):
        out = await git_service.pull(args.remote, args.branch)
        fs_service.cache.clear()
        return success(out)

    async def switch_branch(args: BranchIn):
        out = await git_service.switch_branch(args.branch)
        fs_service.cache.clear()
        return success(out)

    async def create_branch(args: CreateBranchIn):
        out = await git_service.create_branch(args.branch, args.startPoint)
        fs_service.cache.clear()
        return success(out)

    for tool in (
        Tool(
            name="get_project_vcs_status",
            description="Retrieve the version control status of project files. Returns a list of "
            "{path, type} entries (MODIFIED, ADDED, DELETED, RENAMED, COPIED, UNTRACKED, IGNORED, CONFLICTED).",
            input_model=NoArgsIn,
            handler=get_project_vcs_status,
        ),
        Tool(
            name="find_commit_by_message",
            description="Search project history for commits whose message matches the given text. "
            "Returns matching commit hashes.",
            input_model=CommitSearchIn,
            handler=find_commit_by_message,
        ),
        Tool(
            name="get_file_history",
            description="Get the commit history of a project file.",
            input_model=FileHistoryIn,
            handler=get_file_history,
        ),
        Tool(
            name="get_file_diff",
            description="Get the diff of a project file, against the index or between revisions.",
            input_model=FileDiffIn,
            handler=get_file_diff,
        ),
        Tool(
            name="get_branch_info",
            description="Get the current branch and the local and remote branches of the repository.",
            input_model=NoArgsIn,
            handler=get_branch_info,
        ),
        Tool(
            name="get_commit_details",
            description="Get author, date, message and changed files of a commit.",
            input_model=CommitHashIn,
            handler=get_commit_details,
        ),
        Tool(
            name="commit_changes",
            description="Stage all changes and commit them with the given message.",
            input_model=CommitIn,
            handler=commit_changes,
        ),
        Tool(
            name="pull_changes",
            description="Pull changes from a remote repository.",
            input_model=PullIn,
            handler=pull_changes,
        ),
        Tool(
            name="switch_branch",
            description="Check out an existing branch.",
            input_model=BranchIn,
            handler=switch_branch,
        ),
        Tool(
            name="create_branch",
            description="Create a new branch and check it out.",
            input_model=CreateBranchIn,
            handler=create_branch,
        ),
    ):
        registry.register(tool)
