"""
structlog setup shared by the API server and the CLI.

Module loggers use ``logging.getLogger(__name__)``; batch summaries and request
logs use structlog directly. Both end up on one handler with one renderer.
"""

import logging
import sys
from typing import IO, Optional

import structlog

from .config import settings

_QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def _use_json(log_format: str, level: int, stream: IO[str]) -> bool:
    if log_format == "json":
        return True
    if log_format == "console":
        return False
    # auto: console for debugging or an interactive terminal, JSON lines otherwise
    return level != logging.DEBUG and not stream.isatty()


def setup_logging(
    log_level: Optional[str] = None,
    *,
    log_format: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Override level (default: settings.log_level)
        log_format: "json", "console" or "auto" (default: settings.log_format)
        stream: Where records go; the CLI keeps stdout for results, so stderr by default
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    stream = stream or sys.stderr
    as_json = _use_json((log_format or settings.log_format).lower(), level, stream)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if as_json:
        tail: list[structlog.types.Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        tail = [structlog.dev.ConsoleRenderer()]

    # foreign_pre_chain stamps stdlib records the same way as structlog events
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *tail],
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
