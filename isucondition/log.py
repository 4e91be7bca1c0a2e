"""
Structured logging setup.

structlog is configured once at import with a JSON renderer; services call
`configure_logging` at startup to switch renderer and level from config.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from isucondition.config import LoggingConfig


def _processors(renderer: Processor) -> list[Processor]:
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ]


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Configure structlog and the stdlib root logger from `LoggingConfig`."""
    config = config or LoggingConfig()

    renderer: Processor
    if config.format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=config.level, force=True)

    structlog.configure(
        processors=_processors(renderer),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


configure_logging()
