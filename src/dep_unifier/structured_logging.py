"""
Structured logging configuration for dep-unifier.

Provides machine-readable event logs for manifest loading, member
resolution and duplicate analysis.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_RESERVED_RECORD_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class StructuredLogger:
    """Event logger that attaches key/value context to every record."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"dep_unifier.{name}")
        self._setup_logger()
        self.context: Dict[str, Any] = {}

    def _setup_logger(self) -> None:
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.WARNING)
            self.logger.propagate = False

    def set_context(self, **kwargs) -> None:
        self.context = {k: v for k, v in kwargs.items() if v is not None}

    def clear_context(self) -> None:
        self.context.clear()

    def _log(self, level: str, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.context, **kwargs}
        getattr(self.logger, level)(event_type, extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        self._log("info", event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        self._log("debug", event_type, **kwargs)


# Global logger instances
_manifest_logger = StructuredLogger("manifest")
_workspace_logger = StructuredLogger("workspace")
_analyzer_logger = StructuredLogger("analyzer")

_ALL_LOGGERS = (_manifest_logger, _workspace_logger, _analyzer_logger)


def get_manifest_logger() -> StructuredLogger:
    """Get manifest loading logger."""
    return _manifest_logger


def get_workspace_logger() -> StructuredLogger:
    """Get member resolution logger."""
    return _workspace_logger


def get_analyzer_logger() -> StructuredLogger:
    """Get duplicate analysis logger."""
    return _analyzer_logger


def log_manifest_loaded(
    path: str, has_workspace: bool, package_name: Optional[str] = None
) -> None:
    get_manifest_logger().debug(
        "manifest_loaded",
        manifest_path=path,
        has_workspace=has_workspace,
        package_name=package_name,
    )


def log_member_resolved(member: str, manifest_path: str, dependency_count: int) -> None:
    get_workspace_logger().debug(
        "member_resolved",
        member=member,
        manifest_path=manifest_path,
        dependency_count=dependency_count,
    )


def log_member_skipped(entry_path: str, reason: str) -> None:
    get_workspace_logger().debug("member_skipped", entry_path=entry_path, reason=reason)


def log_analysis_start(root: str, member_count: int) -> None:
    """Log analysis start event."""
    logger = get_analyzer_logger()
    logger.set_context(root=root)
    logger.info("analysis_started", member_count=member_count)


def log_analysis_complete(
    duration_ms: int, member_count: int, duplicate_count: int
) -> None:
    """Log analysis completion event."""
    logger = get_analyzer_logger()
    logger.info(
        "analysis_completed",
        duration_ms=duration_ms,
        member_count=member_count,
        duplicate_count=duplicate_count,
    )
    logger.clear_context()


def configure_logging(
    log_level: str = "WARNING",
    enable_json: bool = True,
    log_format: str = DEFAULT_LOG_FORMAT,
) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Level name applied to every event logger
        enable_json: Emit JSON records instead of plain text
        log_format: ``logging.Formatter`` format used when JSON is disabled
    """
    level = getattr(logging, log_level.upper(), logging.WARNING)

    for structured in _ALL_LOGGERS:
        structured.logger.setLevel(level)
        for handler in structured.logger.handlers:
            if enable_json:
                handler.setFormatter(StructuredFormatter())
            else:
                handler.setFormatter(logging.Formatter(log_format))
