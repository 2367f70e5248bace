"""structlog configuration shared by the transport, the converters and the CLI."""

import logging
from typing import Any

import structlog


def setup_logging(json_logs: bool = False, log_level_name: str = "INFO") -> None:
    """Configure structlog for the process.

    Args:
        json_logs: Render one JSON object per line instead of console output
        log_level_name: Minimum level name (DEBUG, INFO, WARNING, ERROR,
            CRITICAL or TRACE)
    """
    level_name = log_level_name.upper()
    # structlog has no TRACE method; treat it as DEBUG
    level = logging.DEBUG if level_name == "TRACE" else getattr(logging, level_name)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    # httpx logs every request at INFO; keep it quiet unless debugging
    for logger_name in ["httpx", "httpcore"]:
        logging.getLogger(logger_name).setLevel(
            logging.DEBUG if level <= logging.DEBUG else logging.WARNING
        )


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)
