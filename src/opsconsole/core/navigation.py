"""Route-change handling: swap the current unit using the cache only.

INVARIANT: resolving a route never loads hierarchy data. Trees loaded at
session start stay valid across any number of navigations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from opsconsole.core.unit_cache import UnitCache
    from opsconsole.domain.models import BusinessUnit

log = structlog.get_logger(__name__)


class NavigationContextResolver:
    """Holds the "current unit" pointer for a session."""

    def __init__(self, unit_cache: UnitCache) -> None:
        self._cache = unit_cache
        self._current: BusinessUnit | None = None

    @property
    def current(self) -> BusinessUnit | None:
        return self._current

    def resolve_current_unit(self, slug: str) -> BusinessUnit | None:
        """Point the session at the unit for *slug*.

        On a miss the previous pointer is kept and None is returned; the
        caller decides whether to redirect.
        """
        unit = self._cache.lookup(slug)
        if unit is None:
            log.info("navigation.unresolved", slug=slug, cache_built=self._cache.is_built)
            return None
        self._current = unit
        return unit

    def point_at(self, unit: BusinessUnit) -> None:
        """Make *unit* current without a slug lookup (session start)."""
        self._current = unit

    def clear(self) -> None:
        self._current = None
