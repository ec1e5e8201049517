"""Structured logging configuration for the SNTP query tool."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import structlog


def setup_logging(
    level: str = "WARNING",
    json_logs: bool = False,
    log_path: Optional[str | Path] = None,
) -> structlog.BoundLogger:
    """Configure structured logging on stderr (or a file) and return a logger.

    stdout is left to the query report.
    """

    handlers: list[logging.Handler] = []
    if log_path:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    else:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",
        handlers=handlers,
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="ISO"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def get_logger(name: str, address: Optional[str] = None) -> structlog.BoundLogger:
    logger = structlog.get_logger(name)
    if address:
        logger = logger.bind(address=address)
    return logger
