"""Record formatting: one JSON object per line, plus the ``data=`` adapter."""

import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Any

# Attributes set by CorrelationLogFilter; empty ones are left out
CONTEXT_FIELDS = ("correlation_id", "user_id", "view_id")

# Logger name prefixes that carry no information in the "component" field
_NOISE_PREFIXES = ("liveviews", "modules")


class JSONFormatter(logging.Formatter):
    """
    Formats records for log shippers.

    Keys: timestamp, level, component, logger, message, the correlation
    context, ``data`` (from StructuredLogAdapter) and ``exception``.
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        include_logger: bool = True,
        include_path: bool = False,
        extra_fields: dict[str, Any] | None = None,
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_logger = include_logger
        self.include_path = include_path
        self.extra_fields = extra_fields or {}

    @staticmethod
    def _extract_component(logger_name: str) -> str:
        """
        Short component name for a logger.

        liveviews.modules.views.runtime -> views.runtime,
        liveviews.core.cache.expiring -> core.cache.expiring,
        __main__ -> main. Foreign loggers are returned unchanged.
        """
        if logger_name == "__main__":
            return "main"

        parts = logger_name.split(".")
        for prefix in _NOISE_PREFIXES:
            if parts and parts[0] == prefix:
                parts.pop(0)
        return ".".join(parts) or logger_name

    @staticmethod
    def _exception_entry(exc_info) -> dict[str, Any]:
        exc_type, exc, tb = exc_info
        return {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc) if exc else None,
            "traceback": traceback.format_exception(exc_type, exc, tb),
        }

    def to_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        """Record as a plain dict, before serialization."""
        entry: dict[str, Any] = {}
        if self.include_timestamp:
            entry["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        entry["level"] = record.levelname
        entry["component"] = self._extract_component(record.name)
        if self.include_logger:
            entry["logger"] = record.name
        if self.include_path:
            entry["path"] = f"{record.pathname}:{record.lineno}"
        entry["message"] = (record.getMessage() or "").strip()

        entry.update(
            (name, getattr(record, name))
            for name in CONTEXT_FIELDS
            if getattr(record, name, None)
        )

        data = getattr(record, "structured_data", None)
        if data:
            entry["data"] = data
        if record.exc_info:
            entry["exception"] = self._exception_entry(record.exc_info)

        entry.update(self.extra_fields)
        return entry

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(self.to_entry(record), ensure_ascii=False, default=str)


class StructuredLogAdapter(logging.LoggerAdapter):
    """
    Accepts ``data={...}`` on every logging call.

        logger = get_logger(__name__)
        logger.info("View sent", data={"content_id": "42:7", "view": "counter"})

    The dict lands on the record as ``structured_data``; JSONFormatter
    writes it under ``data``.
    """

    def __init__(self, logger: logging.Logger, extra: dict | None = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        data = kwargs.pop("data", None)
        extra = {**self.extra, **kwargs.get("extra", {})}
        if data:
            extra["structured_data"] = data
        kwargs["extra"] = extra
        return msg or "", kwargs
