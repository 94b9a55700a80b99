"""structlog configuration for opsconsole.

Everything is routed through the stdlib root handler on stderr, so
structlog events from the loaders and plain ``logging`` records from the
store share one renderer (console, or JSON lines with ``--log-json``).

Levels are layered:

1. ``opsconsole`` follows ``--verbose`` (DEBUG) or stays at WARNING.
2. The store's per-query timing lines sit one notch above DEBUG unless
   ``[logging] store_timings`` is on, so ``-v`` shows loader steps
   without one line per SELECT.
3. ``[logging] levels`` overrides any logger by name, last.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping

import structlog

ROOT_LOGGER = "opsconsole"
STORE_LOGGER = "opsconsole.infrastructure.store"
QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _stderr_handler(log_json: bool, shared: list[structlog.types.Processor]) -> logging.Handler:
    if log_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    return handler


def resolve_levels(
    *,
    verbose: bool,
    store_timings: bool = False,
    levels: Mapping[str, str] | None = None,
) -> dict[str, int]:
    """Map logger names to the numeric level each one should get.

    >>> resolve_levels(verbose=True)["opsconsole.infrastructure.store"]
    20
    """
    resolved = {name: logging.WARNING for name in QUIET_LOGGERS}
    if verbose:
        resolved[ROOT_LOGGER] = logging.DEBUG
        resolved[STORE_LOGGER] = logging.DEBUG if store_timings else logging.INFO
    else:
        resolved[ROOT_LOGGER] = logging.WARNING
        resolved[STORE_LOGGER] = logging.DEBUG if store_timings else logging.NOTSET
    for name, level in (levels or {}).items():
        resolved[name] = logging.getLevelNamesMapping()[level.upper()]
    return resolved


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    store_timings: bool = False,
    levels: Mapping[str, str] | None = None,
) -> None:
    """Configure structlog processors, the stderr handler and logger levels.

    Args:
        verbose: DEBUG for ``opsconsole`` loggers. When False, only WARNING+.
        log_json: Use JSON renderer instead of console renderer.
        store_timings: Emit the store's per-query timing lines.
        levels: Logger name to level name overrides (``[logging] levels``).
    """
    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(_stderr_handler(log_json, shared))
    root_logger.setLevel(logging.WARNING)

    for name, level in resolve_levels(
        verbose=verbose, store_timings=store_timings, levels=levels
    ).items():
        logging.getLogger(name).setLevel(level)
