"""Session-scoped slug → business unit cache.

Built once per session from one full scan of ``business_units``. After
:meth:`UnitCache.build` every lookup is a dict read; nothing here ever
touches the store again until the next build.

Known limitation: two units whose names slugify identically collide.
Which one :meth:`UnitCache.lookup` returns is undefined; the collision is
logged and listed in :attr:`UnitCache.collisions` but not resolved.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from opsconsole.domain.models import BusinessUnit
from opsconsole.domain.slugs import to_slug
from opsconsole.infrastructure.store import StoreError

if TYPE_CHECKING:
    from opsconsole.infrastructure.store import RecordStore

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class _Snapshot:
    by_slug: Mapping[str, BusinessUnit] = field(default_factory=dict)
    by_id: Mapping[str, BusinessUnit] = field(default_factory=dict)
    collisions: frozenset[str] = frozenset()
    built: bool = False


class UnitCache:
    """Slug and id index over every business unit.

    Readers only ever see an empty snapshot or a complete one: the maps
    are assembled off to the side and swapped in with one assignment.

    Precondition: callers build once per session. Rebuilding is allowed
    but costs a full scan.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._snapshot = _Snapshot()

    def build(self) -> int:
        """Scan all units and replace the index. Returns the unit count.

        A failed scan leaves the cache empty (every lookup misses) and
        returns 0; calling ``build()`` again retries.
        """
        self._snapshot = _Snapshot()
        try:
            rows = self._store.query_all("business_units")
        except StoreError as exc:
            log.error("unit_cache.build_failed", error=str(exc))
            return 0

        by_slug: dict[str, BusinessUnit] = {}
        by_id: dict[str, BusinessUnit] = {}
        collisions: set[str] = set()
        for row in rows:
            unit = BusinessUnit.model_validate(row)
            if unit.slug in by_slug:
                collisions.add(unit.slug)
                log.warning("unit_cache.slug_collision", slug=unit.slug, unit_id=unit.id)
            by_slug[unit.slug] = unit
            by_id[unit.id] = unit

        self._snapshot = _Snapshot(
            by_slug=by_slug,
            by_id=by_id,
            collisions=frozenset(collisions),
            built=True,
        )
        log.debug("unit_cache.built", units=len(by_id), collisions=len(collisions))
        return len(by_id)

    def lookup(self, slug: str) -> BusinessUnit | None:
        """Unit for a route slug, or None. Never reads the store."""
        return self._snapshot.by_slug.get(to_slug(slug))

    def get(self, unit_id: str) -> BusinessUnit | None:
        """Unit by id, or None. Never reads the store."""
        return self._snapshot.by_id.get(unit_id)

    def children_of(self, unit_id: str) -> list[BusinessUnit]:
        """Cached direct children of *unit_id*, by name."""
        kids = [u for u in self._snapshot.by_id.values() if u.parent_id == unit_id]
        return sorted(kids, key=lambda u: u.name)

    @property
    def units(self) -> list[BusinessUnit]:
        return sorted(self._snapshot.by_id.values(), key=lambda u: u.name)

    @property
    def collisions(self) -> frozenset[str]:
        return self._snapshot.collisions

    @property
    def is_built(self) -> bool:
        return self._snapshot.built

    def reset(self) -> None:
        """Forget everything (logout)."""
        self._snapshot = _Snapshot()

    def __len__(self) -> int:
        return len(self._snapshot.by_id)
