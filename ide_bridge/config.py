# ide_bridge/config.py
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


class Settings(BaseSettings):
    # Workspace served by the local workspace collaborator
    PROJECT_ROOT: Path = Path(".")

    # HTTP transport
    MCP_HTTP_HOST: str = "127.0.0.1"
    MCP_PORT_START: int = 9960
    MCP_PORT_END: int = 9990
    MCP_PREFERRED_PORTS: str = "9960, 9970, 9980, 9990"
    MCP_PATH_PREFIX: str = "/mcp/"
    MCP_RPC_PATH: str = "/mcp"
    MCP_RESTART_DELAY_SEC: float = 5.0

    # Empty means any origin is accepted
    MCP_HTTP_ALLOWED_ORIGINS: str = ""

    # Handshake metadata
    SERVER_NAME: str = "ide-mcp-bridge"
    SERVER_VERSION: str = "1.0.0"
    PROTOCOL_VERSION: str = "2024-11-05"

    # Subprocess execution (git, background commands)
    COMMAND_TIMEOUT_SEC: float = 15.0
    COMMAND_OUTPUT_MAX_LINES: int = 2000
    COMMAND_OUTPUT_MAX_BYTES: int = 1024 * 1024

    # Project-wide file search
    SEARCH_MAX_FILES: int = 1000
    SEARCH_EXCLUDED_DIRS: str = "node_modules, .git, dist, build, __pycache__, .venv"

    # Content cache: files above this size are read but never stored
    CACHE_MAX_FILE_CHARS: int = 5 * 1024 * 1024

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

    @property
    def preferred_ports(self) -> List[int]:
        return [int(p) for p in _split_csv(self.MCP_PREFERRED_PORTS)]

    @property
    def allowed_origins(self) -> List[str]:
        return [o.lower() for o in _split_csv(self.MCP_HTTP_ALLOWED_ORIGINS)]

    @property
    def excluded_dirs(self) -> List[str]:
        return _split_csv(self.SEARCH_EXCLUDED_DIRS)
