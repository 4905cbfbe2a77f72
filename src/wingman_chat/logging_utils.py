"""Logging bootstrap with optional structured (JSON) output.

Modules log through the stdlib with a dotted event name as the message and
the same name under ``extra["event"]``; structlog only renders the records.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import structlog

APP_LOGGER_PREFIX = "wingman_chat"
DEFAULT_LOG_FILE = "~/.local/state/wingman-chat/app.log"
NOISY_LIBRARIES = ("httpx", "httpcore", "asyncio")
PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_TIMESTAMPER = structlog.processors.TimeStamper(fmt="iso", utc=True)


def _app_only_filter(record: logging.LogRecord) -> bool:
    return record.name.startswith(APP_LOGGER_PREFIX)


def build_formatter(structured: bool) -> logging.Formatter:
    """Return the formatter shared by every handler."""
    if not structured:
        return logging.Formatter(PLAIN_FORMAT)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            _TIMESTAMPER,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # Records from plain ``logging`` calls carry their fields as extras.
    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(ensure_ascii=False),
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.ExtraAdder(),
            _TIMESTAMPER,
        ],
    )


def _open_log_file(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    if os.name == "posix":
        try:
            path.chmod(0o600)
        except OSError:
            logging.getLogger(__name__).warning("Could not chmod log file %s", path)
    return handler


def configure_logging(logging_config: dict[str, Any]) -> Path | None:
    """Configure root logging from the ``[logging]`` section.

    stderr only ever shows this package's warnings so the TUI stays clean;
    the optional log file receives everything at the configured level.
    Returns the log file path when one was opened.
    """
    level = logging.getLevelName(str(logging_config.get("level", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    formatter = build_formatter(bool(logging_config.get("structured", True)))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(max(level, logging.WARNING))
    console.setFormatter(formatter)
    console.addFilter(_app_only_filter)
    root.addHandler(console)

    log_path: Path | None = None
    if logging_config.get("log_to_file", False):
        log_path = Path(str(logging_config.get("log_file_path") or DEFAULT_LOG_FILE)).expanduser()
        root.addHandler(_open_log_file(log_path, level, formatter))

    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
    return log_path
