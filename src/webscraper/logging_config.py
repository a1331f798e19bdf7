"""Logging setup shared by the CLI and embedding applications."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# HTTP client libraries log one line per request
HTTP_LOGGERS = ('httpx', 'httpcore')


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> None:
    """Configure the root logger for a crawl.

    Args:
        level: Log level name. Defaults to the LOG_LEVEL environment variable, then INFO.
        log_file: Optional file receiving a copy of the console output
        format_string: Optional custom format string

    At DEBUG level the HTTP client request lines are kept at INFO so every
    fetch shows up next to the crawl decisions; otherwise they are silenced.
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=numeric_level,
        format=format_string or DEFAULT_FORMAT,
        handlers=handlers,
        force=True
    )

    http_level = logging.INFO if numeric_level <= logging.DEBUG else logging.WARNING
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)


def get_logger(name: str) -> logging.Logger:
    """Logger for a module (usually called with __name__)."""
    return logging.getLogger(name)
