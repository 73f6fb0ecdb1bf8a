"""structlog configuration for command-line runs."""

from __future__ import annotations

import logging
from typing import Any

import structlog


def configure_logging(*, json_logs: bool = False, level: str = "INFO") -> None:
    """Route structlog through stdlib logging with JSON or console output."""
    logging.basicConfig(format="%(message)s", level=level.upper())

    processors: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
