# ide_bridge/logging.py
import json
import logging
import os
import re
from typing import Any, Dict, Optional

PII_RE = re.compile(r"([\w\.-]+)@([\w\.-]+)")  # naive email redaction
SECRET_KEYS = ("password", "token", "secret")
MAX_LOGGED_CHARS = 100


def configure_logging(level: Optional[str] = None):
    logging.basicConfig(
        level=level or os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def redact_str(s: str) -> str:
    return PII_RE.sub("[redacted-email]", s)


def _truncate(s: str) -> str:
    if len(s) <= MAX_LOGGED_CHARS:
        return s
    return f"{s[:MAX_LOGGED_CHARS]}... ({len(s)} chars)"


def redact_args(args: Dict[str, Any]) -> Dict[str, Any]:
    safe = json.loads(json.dumps(args, default=str))  # shallow copy via JSON
    for k, v in list(safe.items()):
        if any(marker in k.lower() for marker in SECRET_KEYS):
            safe[k] = "*****"
        elif isinstance(v, str):
            safe[k] = _truncate(redact_str(v))
    return safe


def log_tool_call(logger: logging.Logger, name: str, args: Dict[str, Any]):
    logger.info("tool_call %s %s", name, redact_args(args))
