"""Structured logging for the ML engine.

Every component logs through ``structlog`` with key/value context
(``algorithm=``, ``connector=``, ``status=``...). Output is rendered as JSON
lines or, for local work, the console renderer; level and format default to
``ML_LOG_LEVEL`` / ``ML_LOG_FORMAT`` from ``MLCommonsConfig``.

Typical usage
- Call ``configure_logging("mlcommons")`` once at startup
- Acquire loggers via ``structlog.get_logger("<component>")``
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.stdlib import LoggerFactory, add_logger_name

from mlcommons.common.config import get_config

LOG_FORMATS = ("json", "console")


def configure_logging(
    service_name: str,
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    **kwargs: Any
) -> None:
    """Configure structured logging.

    Parameters
    - service_name: Identifier bound to each log line as ``service``
    - log_level: ``DEBUG``, ``INFO``, ``WARNING``, ``ERROR`` (case-insensitive);
      defaults to ``ML_LOG_LEVEL``
    - log_format: ``json`` or ``console``; defaults to ``ML_LOG_FORMAT``
    - kwargs: Extra context bound to every log line (e.g. ``node_id``)

    Raises ``ValueError`` for an unknown level or format.
    """
    config = get_config()
    level_name = (log_level or config.ml_log_level).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {level_name}")
    log_format = (log_format or config.ml_log_format).lower()
    if log_format not in LOG_FORMATS:
        raise ValueError(f"Unknown log format: {log_format}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_logger_name,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer() if log_format == "json" else structlog.dev.ConsoleRenderer(),
    ]
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name, env=config.ml_env, **kwargs)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_performance(operation: str, duration_ms: float, **kwargs: Any) -> None:
    """Log the duration of a train, predict, or remote call.

    Parameters
    - operation: Stable identifier such as ``train_kmeans`` or ``remote_invocation``
    - duration_ms: Elapsed time in milliseconds
    - kwargs: Additional dimensions (algorithm, connector, status...)
    """
    get_logger("performance").info(
        "Operation completed",
        operation=operation,
        duration_ms=round(duration_ms, 3),
        **kwargs
    )
