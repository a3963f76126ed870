"""structlog setup for the secretsboard service.

Every event is a single JSON line on stderr carrying ``service``,
``level``, ``ts`` (ISO 8601, UTC) and the ``component`` bound by
:func:`get_logger`, e.g.::

    {"component": "watcher", "watcher": "Certificate/demo", "items": 3,
     "event": "list_complete", "service": "secretsboard", "level": "info",
     "ts": "2024-05-01T12:00:00.000000Z"}
"""

from __future__ import annotations

import logging
import sys
from typing import Any, cast

import structlog
from structlog.typing import EventDict, FilteringBoundLogger

SERVICE_NAME = "secretsboard"


def _add_service(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def setup_logging(level: str = "info") -> None:
    """Route all structlog output through the JSON renderer at ``level``."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> FilteringBoundLogger:
    """Return a logger whose events carry ``component``."""
    return cast(FilteringBoundLogger, structlog.get_logger(component=component))
