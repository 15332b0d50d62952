"""
Logging setup

Configures stdlib logging once per process from LogSettings.
"""

import json
import logging
from typing import Any, Dict, Optional

from bitbucket_mcp.config import get_settings

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Attributes set by LoggerAdapter(extra=...) that should show up in JSON lines
CONTEXT_FIELDS = ("workspace", "repo", "scope")


class JsonLineFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(settings=None, stream=None) -> None:
    """
    Apply LOG_LEVEL / LOG_FORMAT to the root logger.

    Args:
        settings: Settings instance (default: loaded from environment)
        stream: Optional stream for the handler (default: stderr)
    """
    settings = settings or get_settings()

    handler = logging.StreamHandler(stream)
    if settings.log.format == "json":
        handler.setFormatter(JsonLineFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    # stdout is reserved for the MCP stdio transport, so handlers go to stderr
    logging.basicConfig(level=settings.log.level, handlers=[handler], force=True)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def scoped_logger(
    name: str,
    workspace: Optional[str] = None,
    repo: Optional[str] = None,
    scope: Optional[str] = None,
) -> logging.LoggerAdapter:
    """Logger carrying request context, handed explicitly to scope handlers."""
    return logging.LoggerAdapter(
        logging.getLogger(name),
        {"workspace": workspace, "repo": repo, "scope": scope},
    )
