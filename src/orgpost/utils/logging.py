"""Structured logging setup for orgpost."""

import os
from pathlib import Path
from typing import Any, Optional

import structlog


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def default_log_file() -> Path:
    """Log file location: ORGPOST_LOG_FILE or ~/.cache/orgpost/logs/orgpost.log."""
    override = os.environ.get("ORGPOST_LOG_FILE")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".cache" / "orgpost" / "logs" / "orgpost.log"


def configure_logging(log_file: Optional[Path] = None) -> None:
    """
    Send JSON log lines to the orgpost log file.

    ORGPOST_LOG_LEVEL picks the threshold (unknown values fall back to INFO):
    - DEBUG: Skipped subtrees, resolved paths, individual file writes
    - INFO: Run start/finish, records written, site generator commands
    - WARNING: Per-record failures, dropped custom fields, missing extra files
    - ERROR: Fatal outline/path errors, write failures

    Example:
        ORGPOST_LOG_LEVEL=DEBUG orgpost export
        tail -f ~/.cache/orgpost/logs/orgpost.log | jq .
    """
    log_file = log_file or default_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    level = os.environ.get("ORGPOST_LOG_LEVEL", "INFO").upper()
    if level not in LOG_LEVELS:
        level = "INFO"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=log_file.open("a", encoding="utf-8")),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """
    Module logger; events are snake_case names with keyword context.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("record_written", path="posts/hello.md")
    """
    return structlog.get_logger(name)
