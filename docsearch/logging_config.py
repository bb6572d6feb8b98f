"""Structured logging setup shared by the CLI and the web app."""
import logging
import sys
from typing import Optional

import structlog

from docsearch import config


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structlog to emit JSON lines on stderr.

    stdout is left alone so CLI output stays readable.

    Args:
        level: Log level name (default from config.LOG_LEVEL)
    """
    level_name = (level or config.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
