"""Structured logging configuration for the command line application."""

import logging
import sys

import structlog


def configure_logging(log_level: str = "INFO", dev_mode: bool = False) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        dev_mode: Render human-readable console output instead of JSON lines.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    # Library loggers (botocore, httpx, google) go to stderr at the same level
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if dev_mode:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.extend(
            [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
