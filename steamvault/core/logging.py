"""Structured logging: structlog events rendered through one stdlib handler.

Environment:
    STEAMVAULT_LOG_LEVEL   level name, default INFO
    STEAMVAULT_LOG_FORMAT  ``console`` or ``json``, default console
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

_PRE_CHAIN: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(level: str | None = None) -> None:
    """Route structlog and stdlib records to stderr.

    An explicit *level* (``--verbose``) wins over ``STEAMVAULT_LOG_LEVEL``.
    Stdout is left to the live progress line.
    """
    log_level = (level or os.environ.get("STEAMVAULT_LOG_LEVEL", "INFO")).upper()
    log_format = os.environ.get("STEAMVAULT_LOG_FORMAT", "console").lower()

    renderer = _renderer(log_format)
    processors = [structlog.processors.format_exc_info] if log_format == "json" else []
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_PRE_CHAIN,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            *processors,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(log_level)
    logging.getLogger("steamvault").setLevel(log_level)

    structlog.configure(
        processors=[*_PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
