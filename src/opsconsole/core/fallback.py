"""Soft-fail and fan-out helpers shared by every loader.

INVARIANT: a soft failure is logged, noted, and replaced by a typed
default. Only :class:`StoreError` is absorbed; programming errors still
propagate.
"""

from __future__ import annotations

import contextvars
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

import structlog

from opsconsole.infrastructure.store import StoreError

log = structlog.get_logger(__name__)

_T = TypeVar("_T")


def fetch_or_default(
    fetch: Callable[[], _T],
    default: _T,
    *,
    what: str,
    degraded: list[str] | None = None,
) -> _T:
    """Return ``fetch()``, or *default* when the store read fails.

    Args:
        fetch: Zero-argument callable performing the read.
        default: Value substituted on failure (a fresh instance per call).
        what: Short label for logs and the degradation note.
        degraded: Optional list collecting one note per substitution.
    """
    try:
        return fetch()
    except StoreError as exc:
        log.warning("fetch.degraded", what=what, entity=exc.entity, error=str(exc))
        if degraded is not None:
            degraded.append(f"{what}: {exc}")
        return default


def run_concurrently(
    calls: Sequence[Callable[[], _T]],
    *,
    max_workers: int = 4,
    sync: bool = False,
) -> list[_T]:
    """Run independent *calls* and return their results in call order.

    Each call runs under a copy of the caller's context so telemetry spans
    nest correctly. With ``sync=True`` (or a single call) everything runs
    inline. The first exception raised by any call is re-raised after all
    calls finish.
    """
    if sync or len(calls) <= 1 or max_workers <= 1:
        return [call() for call in calls]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(calls))) as pool:
        futures = [pool.submit(contextvars.copy_context().run, call) for call in calls]
        return [future.result() for future in futures]
