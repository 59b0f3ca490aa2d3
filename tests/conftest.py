# tests/conftest.py
import pytest

from ide_bridge.config import Settings
from ide_bridge.di import build_container
from ide_server.toolset import build_tool_registry


@pytest.fixture
def container(tmp_path):
    return build_container(Settings(PROJECT_ROOT=tmp_path, _env_file=None))


@pytest.fixture
def root(container):
    return container.workspace.root_path()


@pytest.fixture
def registry(container):
    return build_tool_registry(container)
