"""Structured logging: structlog events rendered through stdlib handlers.

Every prformance module logs with ``structlog.get_logger("prformance.<area>")``
and dotted event names. :func:`setup_logging` routes those events, and the
plain stdlib records of uvicorn and httpx, through one stderr handler so that
``prformance run`` keeps stdout for the JSON report.

Environment:
    PRFORMANCE_LOG_LEVEL   level of the ``prformance`` loggers (default INFO;
                           ``LOG_LEVEL`` is honoured as a fallback)
    PRFORMANCE_LOG_FORMAT  ``console`` or ``json`` (default console)
"""

from __future__ import annotations

import logging.config
import os
from typing import Any

import structlog

LOG_FORMATS = ("console", "json")

# Third-party loggers kept quieter than our own. Request lines come from
# RequestIDMiddleware, so uvicorn's access log only reports problems.
_LIBRARY_LEVELS = {
    "uvicorn.access": "WARNING",
    "uvicorn.error": "INFO",
    "httpx": "WARNING",
    "httpcore": "WARNING",
}


def resolve_level() -> str:
    level = os.environ.get("PRFORMANCE_LOG_LEVEL") or os.environ.get("LOG_LEVEL") or "INFO"
    return level.upper()


def resolve_format() -> str:
    fmt = (os.environ.get("PRFORMANCE_LOG_FORMAT") or "console").lower()
    return fmt if fmt in LOG_FORMATS else "console"


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def build_logging_config(level: str, fmt: str) -> dict[str, Any]:
    """``dictConfig`` mapping with a single structlog-formatted stderr handler."""
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer()
    )
    loggers: dict[str, dict[str, Any]] = {"prformance": {"level": level}}
    loggers.update({name: {"level": lvl} for name, lvl in _LIBRARY_LEVELS.items()})
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "foreign_pre_chain": _pre_chain(),
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
            },
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": "structlog",
            },
        },
        "root": {"handlers": ["stderr"], "level": level},
        "loggers": loggers,
    }


def setup_logging() -> None:
    """Configure structlog and the stdlib logging tree from the environment."""
    level, fmt = resolve_level(), resolve_format()
    structlog.configure(
        processors=[*_pre_chain(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.config.dictConfig(build_logging_config(level, fmt))
