"""Structured logging for the avatar.

Every component logs through structlog with snake_case event names and a
``component`` key bound at construction. Output goes through the stdlib
logging machinery: human-readable on the terminal, JSON lines in a
rotating file.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog
from structlog.typing import Processor

# Where the interactive session logs when no file is configured
UI_LOG_FILE = "~/.local/share/avatar/logs/avatar.log"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore")


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]


def _console_handler(processors: list[Processor]) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
            foreign_pre_chain=processors,
        )
    )
    return handler


def _file_handler(
    log_file: str,
    max_file_size: int,
    backup_count: int,
    processors: list[Processor],
) -> logging.Handler:
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(path, maxBytes=max_file_size, backupCount=backup_count)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=processors,
        )
    )
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console: bool = True,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    ui_mode: bool = False,
) -> None:
    """Configure structlog and the root logger.

    Replaces any handlers already on the root logger, so calling it again
    reconfigures logging instead of duplicating output.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Rotating JSON log file; None disables file logging.
        console: Whether to log to stdout.
        max_file_size: Bytes before the log file is rotated.
        backup_count: Rotated files to keep.
        ui_mode: Interactive session. Log lines stay off the terminal and
            go to UI_LOG_FILE unless ``log_file`` is given.
    """
    if ui_mode:
        console = False
        log_file = log_file or UI_LOG_FILE

    processors = _shared_processors()
    structlog.configure(
        processors=processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = []
    if console:
        handlers.append(_console_handler(processors))
    if log_file:
        handlers.append(_file_handler(log_file, max_file_size, backup_count, processors))

    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        handler.setLevel(log_level)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger named after the calling module."""
    return structlog.get_logger(name)
