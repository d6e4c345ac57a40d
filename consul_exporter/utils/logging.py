"""Logging setup for the exporter.

Log lines carry the Consul service and node a message is about. Callers pass
them through ``extra={"service": ..., "node": ...}``; records without them
get a ``-`` placeholder so the format string never fails.
"""

import logging
from typing import Union

from rich.logging import RichHandler


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(service)s@%(node)s | %(name)s | %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"

CONTEXT_FIELDS = ("service", "node")


class ConsulContextFilter(logging.Filter):
    """Fills in missing Consul context fields on log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, "-")
        return True


def resolve_level(level: Union[int, str]) -> int:
    """Map a level name (DEBUG|INFO|WARNING|ERROR) to its numeric value, INFO if unknown."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: Union[int, str] = logging.INFO, rich_tracebacks: bool = True) -> None:
    handler = RichHandler(rich_tracebacks=rich_tracebacks, markup=False)
    handler.addFilter(ConsulContextFilter())

    logging.basicConfig(
        level=resolve_level(level),
        format=LOG_FORMAT,
        datefmt=DATE_FMT,
        handlers=[handler],
    )
