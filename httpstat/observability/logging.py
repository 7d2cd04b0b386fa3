"""structlog setup for httpstat and the demo app.

Every line is one JSON object on stdout. Records from the httpstat loggers
carry a ``component`` field (``history``, ``middleware``, ``stats``, or
``access`` for the per-request line) so sampler events can be filtered apart
from request traffic. The sampler logs every tick at debug level and has its
own threshold, so a verbose app does not have to drown in ``history.sample``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger


_CONFIGURED = False

PACKAGE_LOGGER = "httpstat"
ACCESS_LOGGER = "access"
HISTORY_LOGGER = "httpstat.history"


def _as_level(level: int | str) -> int:
    if isinstance(level, str):
        return logging.getLevelName(level.upper())
    return level


def add_component(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Tag httpstat records with the subsystem that emitted them."""

    name = event_dict.get("logger") or ""
    if name == ACCESS_LOGGER:
        event_dict.setdefault("component", "access")
    elif name.startswith(PACKAGE_LOGGER + "."):
        event_dict.setdefault("component", name[len(PACKAGE_LOGGER) + 1 :].split(".", 1)[0])
    return event_dict


def configure_logging(level: int | str = logging.INFO, history_level: int | str | None = None) -> None:
    """Send structlog and stdlib records through one JSON handler.

    ``history_level`` sets the sampler's threshold on its own and defaults to
    ``level``. uvicorn's access logger is held at WARNING because the stats
    middleware already writes one ``http_request`` line per request.
    Only the first call has any effect.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    level = _as_level(level)
    history_level = level if history_level is None else _as_level(history_level)

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_component,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    logging.getLogger(HISTORY_LOGGER).setLevel(history_level)

    for name, name_level in (("uvicorn", level), ("uvicorn.error", level), ("uvicorn.access", logging.WARNING)):
        server_logger = logging.getLogger(name)
        server_logger.handlers = [handler]
        server_logger.propagate = False
        server_logger.setLevel(max(level, name_level))

    _CONFIGURED = True
