"""ConsoleSession — the per-login context object.

Owns every piece of mutable state the console keeps between requests:
the unit cache, the loaded trees, the expansion state and the current
unit pointer. Nothing here is module-level; pass the session to whatever
needs it and call :meth:`ConsoleSession.reset` on logout.

Lifecycle::

    session = ConsoleSession(store, group_type_name="GROUP_MANAGEMENT")
    session.start("north-group")       # one full unit scan + one tree load
    session.navigate("leeds-depot")    # cache only
    session.reset()                    # logout
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from opsconsole.core.clients import ClientAggregateLoader, ClientDirectory
from opsconsole.core.errors import UnitNotFoundError
from opsconsole.core.hierarchy import HierarchyLoader
from opsconsole.core.navigation import NavigationContextResolver
from opsconsole.core.unit_cache import UnitCache
from opsconsole.domain.expansion import ExpansionStateStore

if TYPE_CHECKING:
    from opsconsole.domain.models import BusinessUnit, UnitTree
    from opsconsole.infrastructure.store import RecordStore

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class NavigationContext:
    """Result of a route change: the unit and its tree if already loaded."""

    unit: BusinessUnit
    tree: UnitTree | None = None


class ConsoleSession:
    """Explicit, injectable owner of session state.

    Args:
        store: Record store shared by every loader.
        group_type_ids: Unit type ids that mark a group root.
        group_type_name: Unit type name that marks a group root.
        seed_expanded: Extra expansion keys that start expanded.
        max_workers: Worker threads for independent loader steps.
        sync: Run independent loader steps inline.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        group_type_ids: Iterable[str] = (),
        group_type_name: str | None = None,
        seed_expanded: Iterable[str] = (),
        max_workers: int = 4,
        sync: bool = False,
    ) -> None:
        self.store = store
        self.unit_cache = UnitCache(store)
        self.hierarchy = HierarchyLoader(
            store,
            self.unit_cache,
            group_type_ids=group_type_ids,
            group_type_name=group_type_name,
            max_workers=max_workers,
            sync=sync,
        )
        self.expansion = ExpansionStateStore(seed_expanded)
        self.navigation = NavigationContextResolver(self.unit_cache)
        self.clients = ClientAggregateLoader(store, max_workers=max_workers, sync=sync)
        self.directory = ClientDirectory(store, self.unit_cache)
        self._trees: dict[str, UnitTree] = {}
        self.tree_loads = 0
        self._group_types_resolved = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ensure_cache(self, degraded: list[str] | None = None) -> bool:
        """Build the unit cache and group-type set once. True when units are cached."""
        if not self.unit_cache.is_built:
            self.unit_cache.build()
        if not self._group_types_resolved:
            self.hierarchy.resolve_group_types(degraded)
            self._group_types_resolved = True
        return self.unit_cache.is_built

    def start(self, home: str, degraded: list[str] | None = None) -> UnitTree:
        """Resolve *home* (unit id, else slug), load its tree and make it current.

        Raises:
            UnitNotFoundError: *home* matches no cached unit.
        """
        self.ensure_cache(degraded)
        unit = self.unit_cache.get(home) or self.unit_cache.lookup(home)
        if unit is None:
            raise UnitNotFoundError(home)

        self.tree_loads += 1
        tree = self.hierarchy.load_full_tree(unit.id, degraded)
        self._trees[unit.id] = tree
        for child in tree.children:
            self._trees[child.unit.id] = child
        self.navigation.point_at(unit)
        log.info("session.started", unit_id=unit.id, children=len(tree.children))
        return tree

    def navigate(self, slug: str) -> NavigationContext | None:
        """Switch the current unit. Never loads hierarchy data."""
        unit = self.navigation.resolve_current_unit(slug)
        if unit is None:
            return None
        return NavigationContext(unit=unit, tree=self._trees.get(unit.id))

    def reset(self) -> None:
        """Logout: drop caches, trees, expansion state and the current unit."""
        self.unit_cache.reset()
        self.hierarchy.reset()
        self._trees.clear()
        self.expansion.reset()
        self.navigation.clear()
        self.tree_loads = 0
        self._group_types_resolved = False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def current_unit(self) -> BusinessUnit | None:
        return self.navigation.current

    def tree_for(self, unit_id: str) -> UnitTree | None:
        return self._trees.get(unit_id)

    def is_group_root(self, unit: BusinessUnit) -> bool:
        return self.hierarchy.is_group_root(unit)
