"""Structured logging for the translation pipeline.

Service modules log through stdlib ``logging.getLogger(__name__)``; everything is
rendered by structlog so that context bound with ``structlog.contextvars``
(``dispatch_cycle`` from the dispatcher, ``command`` and ``target_lang`` from
the CLI) shows up on every line, stdlib records included.
"""

import logging
import sys
from typing import Optional

import structlog

from autotranslate.config import Settings, get_settings


class SuppressHttpxInfoFilter(logging.Filter):
    """Filter that drops httpx per-request INFO lines (they carry provider keys in query strings)."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno > logging.INFO


def configure_logging(settings: Optional[Settings] = None) -> None:
    """JSON lines in production, console output otherwise; DEBUG when ``app_debug`` is set."""
    settings = settings or get_settings()
    log_level = logging.DEBUG if settings.app_debug else logging.INFO

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]

    if settings.app_env == "production":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    # stdout is reserved for command output
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # Google keys travel in the query string; keep request lines out of the log
    httpx_logger = logging.getLogger("httpx")
    if not any(isinstance(f, SuppressHttpxInfoFilter) for f in httpx_logger.filters):
        httpx_logger.addFilter(SuppressHttpxInfoFilter())
    logging.getLogger("httpcore").setLevel(logging.WARNING)
