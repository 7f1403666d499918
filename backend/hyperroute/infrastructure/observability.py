"""Structured Logging — JSON records for the kernel's package logger.

Invariants:
    - Every record carries timestamp (of the event, not of formatting), level,
      logger name and message
    - Request fields (correlation_id, method, path, status_code, duration_ms) and
      workflow fields (workflow, event, state) appear only when the call site set them
    - configure_logging() owns at most one handler on the "hyperroute" logger;
      calling it again replaces that handler instead of stacking a second one

Design Decisions:
    - Configures the package logger, never the root logger: the embedding
      application keeps control of its own handlers
    - JSONFormatter over third-party libs: zero dependencies, full control
    - Run from the ASGI lifespan startup, after settings are resolved
"""

import json
import logging
from datetime import datetime, timezone

from hyperroute.config import Settings

PACKAGE_LOGGER = "hyperroute"

REQUEST_FIELDS = ("correlation_id", "method", "path", "status_code", "duration_ms", "error_code")
WORKFLOW_FIELDS = ("workflow", "event", "state")

_installed: logging.Handler | None = None


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in REQUEST_FIELDS + WORKFLOW_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def build_formatter(fmt: str) -> logging.Formatter:
    if fmt == "json":
        return JSONFormatter()
    return logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")


def configure_logging(settings: Settings) -> logging.Handler:
    """Install (or replace) the kernel's handler per settings.log_level/log_format."""
    global _installed

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _installed is not None:
        package_logger.removeHandler(_installed)

    handler = logging.StreamHandler()
    handler.setFormatter(build_formatter(settings.log_format))
    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    _installed = handler
    return handler
