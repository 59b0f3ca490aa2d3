# ide_server/tools/project.py
import json
import os
import tomllib
from typing import Any, Dict, List

from pydantic import BaseModel

from ide_bridge.services.filesystem import FileSystemService
from ide_server.envelope import success
from ide_server.registry import Tool, ToolRegistry

PROJECT_MARKERS = [
    ("pom.xml", "maven"),
    ("build.gradle", "gradle"),
    ("build.gradle.kts", "gradle"),
    ("package.json", "node"),
    ("pyproject.toml", "python"),
    ("Pipfile", "python-pipenv"),
    ("requirements.txt", "python-pip"),
    ("go.mod", "go"),
    ("Cargo.toml", "rust"),
]


class NoArgsIn(BaseModel):
    pass


def _requirement_lines(text: str) -> List[str]:
    deps = []
    for line in text.splitlines():
        line = line.split("#", 1)[0].strip()
        if line and not line.startswith("-"):
            deps.append(line)
    return deps


def register_project_tools(registry: ToolRegistry, fs_service: FileSystemService):
    def _root() -> str:
        return fs_service.resolver.require("/")

    def _exists(name: str) -> bool:
        return os.path.isfile(os.path.join(_root(), name))

    async def get_project_modules(args: NoArgsIn):
        types: List[str] = []
        for marker, kind in PROJECT_MARKERS:
            if kind not in types and _exists(marker):
                types.append(kind)
        modules = [
            e["name"] for e in await fs_service.list_dir("/")
            if e["type"] == "directory" and e["name"] not in fs_service.excluded_dirs and not e["name"].startswith(".")
        ]
        return success({"types": types, "modules": modules})

    async def get_project_dependencies(args: NoArgsIn):
        found: List[Dict[str, Any]] = []
        if _exists("package.json"):
            data = json.loads(await fs_service.read_text("package.json"))
            found.append({
                "source": "package.json",
                "dependencies": data.get("dependencies", {}),
                "devDependencies": data.get("devDependencies", {}),
            })
        if _exists("pyproject.toml"):
            data = tomllib.loads(await fs_service.read_text("pyproject.toml"))
            project = data.get("project", {})
            found.append({
                "source": "pyproject.toml",
                "dependencies": project.get("dependencies", []),
                "optionalDependencies": project.get("optional-dependencies", {}),
            })
        for name in sorted(os.listdir(_root())):
            if name.startswith("requirements") and name.endswith(".txt"):
                found.append({
                    "source": name,
                    "dependencies": _requirement_lines(await fs_service.read_text(name)),
                })
        return success(found)

    for tool in (
        Tool(
            name="get_project_modules",
            description="Detect the project's build systems and list its top-level modules.",
            input_model=NoArgsIn,
            handler=get_project_modules,
        ),
        Tool(
            name="get_project_dependencies",
            description="List declared dependencies from package.json, pyproject.toml and requirements files.",
            input_model=NoArgsIn,
            handler=get_project_dependencies,
        ),
    ):
        registry.register(tool)
