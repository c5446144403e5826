"""structlog configuration for hello-ci.

Two output modes:
- Human (default): colored console lines on stderr
- JSON (HELLO_LOG_JSON=true): one JSON object per line on stderr

uvicorn's own loggers are routed through the same formatter so request and
lifecycle lines look like ours.
"""

from __future__ import annotations

import logging
import sys

import structlog

_OWN_LOGGERS = ("helloci", "uvicorn", "uvicorn.error", "uvicorn.access")


def configure_logging(*, level: str = "INFO", log_json: bool = False, access_log: bool = True) -> None:
    """Configure structlog processors and stdlib handlers.

    Args:
        level: Level name for the service loggers (``helloci`` and uvicorn).
        log_json: Use the JSON renderer instead of the console renderer.
        access_log: Keep per-request ``uvicorn.access`` lines.
    """
    service_level = logging.getLevelName(level.upper())
    if not isinstance(service_level, int):
        service_level = logging.INFO

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    for name in _OWN_LOGGERS:
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.propagate = True
        logger.setLevel(service_level)

    if not access_log:
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
