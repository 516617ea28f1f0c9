"""
Structured logging setup for processes hosting a bound service.

The library itself only emits records on "rpc_binder.*" loggers; hosts call
setup_logging() once to get one JSON object per line on stderr.
"""

from __future__ import annotations

import logging
import sys
import time
from typing import IO, Any

from pythonjsonlogger.json import JsonFormatter

__all__ = ["BinderJsonFormatter", "setup_logging"]


class BinderJsonFormatter(JsonFormatter):
    """JSON formatter that outputs ISO8601 timestamp, level and logger name."""

    def __init__(self) -> None:
        super().__init__(fmt="%(message)s")

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("ts", time.strftime("%Y-%m-%dT%H:%M:%S%z"))
        log_record["level"] = record.levelname.lower()
        log_record["logger"] = record.name


def setup_logging(level: str | int = "INFO", stream: IO[str] | None = None) -> logging.Handler:
    """
    Attach a JSON stream handler to the root logger, replacing existing ones.

    Returns the installed handler.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(stream=stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(BinderJsonFormatter())
    root.addHandler(handler)
    return handler
