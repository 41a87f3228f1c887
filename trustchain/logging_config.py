"""
Structured logging configuration for trustchain.

Every record carries a trace_id, normally the chain id or owner id it concerns,
so one chain's history can be pulled out of mixed output.

Environment Variables:
    TRUSTCHAIN_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    TRUSTCHAIN_LOG_FORMAT: Log format (json, text) - default: json

Usage:
    from trustchain.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, trace_id="user:42:agent:reader")
    logger.info("Appended element")
"""

import logging
import os
import sys
from typing import IO, Optional

from pythonjsonlogger.json import JsonFormatter

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

JSON_FIELDS = "%(asctime)s %(name)s %(levelname)s %(message)s %(trace_id)s"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s [trace_id=%(trace_id)s]"


def _formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter(
            JSON_FIELDS,
            rename_fields={
                "asctime": "timestamp",
                "name": "logger",
                "levelname": "level",
            },
        )
    return logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")


def setup_logging(
    level: Optional[str] = None,
    log_format: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """
    Configure the root logger.

    Arguments override TRUSTCHAIN_LOG_LEVEL / TRUSTCHAIN_LOG_FORMAT. Output
    goes to stderr by default so CLI --json output on stdout stays parseable.
    Unknown levels fall back to INFO.
    """
    level_name = (level or os.getenv("TRUSTCHAIN_LOG_LEVEL", "INFO")).upper()
    if level_name not in LEVELS:
        level_name = "INFO"
    log_format = (log_format or os.getenv("TRUSTCHAIN_LOG_FORMAT", "json")).lower()

    root_logger = logging.getLogger()
    root_logger.setLevel(level_name)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level_name)
    handler.addFilter(TraceIDFilter())
    handler.setFormatter(_formatter(log_format))
    root_logger.addHandler(handler)


def get_logger(name: str, trace_id: Optional[str] = None) -> logging.LoggerAdapter:
    """Logger that stamps every record with trace_id (or "N/A")."""
    return logging.LoggerAdapter(logging.getLogger(name), {"trace_id": trace_id or "N/A"})


class TraceIDFilter(logging.Filter):
    """Default trace_id for records logged without one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = "N/A"  # type: ignore
        return True
