"""Process-wide logging setup for the bot and the runtime."""

import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional

from .formatters import JSONFormatter, StructuredLogAdapter
from .correlation import CorrelationLogFilter
from .logging_config import get_logging_config


_logging_configured = False

TEXT_FORMAT = "%(asctime)s [%(correlation_id)s] %(name)s - %(levelname)s - %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _console_handler(level: int, json_format: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    formatter = JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT)
    handler.setFormatter(formatter)
    return handler


def _file_handler(log_file: str, level: int, max_bytes: int, backup_count: int) -> logging.Handler:
    # Files are always JSON, with source locations
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter(include_path=True))
    return handler


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    json_format: Optional[bool] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 3,
    component: str = "default",
    force: bool = False,
) -> None:
    """
    Configure the root logger once per process.

    Args:
        level: DEBUG/INFO/WARNING/ERROR; falls back to logging-config.yaml
        log_file: Optional rotating JSON log file
        json_format: JSON on the console; falls back to logging-config.yaml
        max_bytes: Rotation size of the log file
        backup_count: Rotated files to keep
        component: Section of logging-config.yaml to read (bot, runtime)
        force: Replace handlers of an earlier call
    """
    global _logging_configured
    if _logging_configured and not force:
        return

    log_config = get_logging_config()
    level = level or log_config.get_level(component)
    if json_format is None:
        json_format = log_config.get_json_format(component)
    numeric_level = getattr(logging, level.upper())

    handlers = [_console_handler(numeric_level, json_format)]
    if log_file:
        handlers.append(_file_handler(log_file, numeric_level, max_bytes, backup_count))

    correlation_filter = CorrelationLogFilter()
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.addFilter(correlation_filter)
        root_logger.addHandler(handler)

    log_config.apply_framework_levels()
    _logging_configured = True


def get_logger(name: str) -> StructuredLogAdapter:
    """Structured logger for a module (pass ``__name__``)."""
    return StructuredLogAdapter(logging.getLogger(name))
