"""Department/page tree loading for business units.

:meth:`HierarchyLoader.load_full_tree` issues a bounded number of store
round trips regardless of how many child units or departments exist:

1. root departments  ||  direct child units (group roots only)
2. departments of every child unit, one batched join keyed by unit ids
3. pages of every department in the tree, one batched join keyed by
   department ids

A batched read that fails is retried per key so one bad department (or
child unit) degrades alone instead of emptying its siblings.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

import structlog

from opsconsole.core.errors import UnitNotFoundError
from opsconsole.core.fallback import fetch_or_default, run_concurrently
from opsconsole.domain.models import (
    BusinessUnit,
    BusinessUnitType,
    Department,
    DepartmentNode,
    DepartmentPage,
    UnitTree,
)
from opsconsole.services.telemetry import trace_span

if TYPE_CHECKING:
    from opsconsole.core.unit_cache import UnitCache
    from opsconsole.infrastructure.store import RecordStore

log = structlog.get_logger(__name__)

DEPARTMENT_FIELDS = ("name", "menu_icon", "menu_path")
PAGE_FIELDS = ("name", "path")


class HierarchyLoader:
    """Loads departments, pages and child units for the sidebar.

    Args:
        store: Record store to read from.
        unit_cache: Resolves unit ids without a store read when possible.
        group_type_ids: Unit type ids that mark a group root.
        group_type_name: Type name that marks a group root; resolved to ids
            by :meth:`resolve_group_types`.
        max_workers: Worker threads for independent steps.
        sync: Run independent steps inline.
    """

    def __init__(
        self,
        store: RecordStore,
        unit_cache: UnitCache,
        *,
        group_type_ids: Iterable[str] = (),
        group_type_name: str | None = None,
        max_workers: int = 4,
        sync: bool = False,
    ) -> None:
        self._store = store
        self._cache = unit_cache
        self._configured_type_ids = frozenset(group_type_ids)
        self._resolved_type_ids: set[str] = set()
        self._group_type_name = group_type_name
        self._max_workers = max_workers
        self._sync = sync

    # ------------------------------------------------------------------
    # Group roots
    # ------------------------------------------------------------------

    def resolve_group_types(self, degraded: list[str] | None = None) -> frozenset[str]:
        """Add the ids of types named ``group_type_name`` to the group-root set."""
        if self._group_type_name:
            rows = fetch_or_default(
                lambda: self._store.query_all("business_unit_types"),
                [],
                what="business unit types",
                degraded=degraded,
            )
            for row in rows:
                unit_type = BusinessUnitType.model_validate(row)
                if unit_type.name == self._group_type_name:
                    self._resolved_type_ids.add(unit_type.id)
        return self.group_type_ids

    @property
    def group_type_ids(self) -> frozenset[str]:
        return frozenset(self._configured_type_ids | self._resolved_type_ids)

    def reset(self) -> None:
        """Forget type ids resolved by name; configured ids stay."""
        self._resolved_type_ids.clear()

    def is_group_root(self, unit: BusinessUnit) -> bool:
        return unit.type_id is not None and unit.type_id in self.group_type_ids

    # ------------------------------------------------------------------
    # Single-key operations
    # ------------------------------------------------------------------

    def load_departments(self, unit_id: str) -> list[Department]:
        """Active departments offered by *unit_id*, in store order."""
        return self.load_departments_for([unit_id]).get(unit_id, [])

    def load_pages(self, department_id: str) -> list[DepartmentPage]:
        """Active pages of *department_id*, ascending by sort order."""
        return self.load_pages_for([department_id]).get(department_id, [])

    def load_child_units(self, parent_unit_id: str) -> list[BusinessUnit]:
        """Direct children of *parent_unit_id*, ascending by name."""
        rows = self._store.query_by_foreign_key(
            "business_units",
            "parent_business_unit_id",
            parent_unit_id,
            order_by=("name",),
        )
        children = [BusinessUnit.model_validate(row) for row in rows]
        return sorted(
            (child for child in children if child.id != parent_unit_id),
            key=lambda unit: unit.name,
        )

    # ------------------------------------------------------------------
    # Batched operations
    # ------------------------------------------------------------------

    def load_departments_for(self, unit_ids: Sequence[str]) -> dict[str, list[Department]]:
        """Active departments for several units in one join, keyed by unit id.

        Activation rows whose department record is missing are dropped.
        """
        grouped: dict[str, list[Department]] = {unit_id: [] for unit_id in unit_ids}
        if not unit_ids:
            return grouped
        rows = self._store.query_join(
            "business_unit_departments",
            "department_id",
            "departments",
            DEPARTMENT_FIELDS,
            filters={"business_unit_id": list(unit_ids)},
            active_only=True,
        )
        for row in rows:
            linked = row["departments"]
            if linked is None:
                continue
            grouped.setdefault(row["business_unit_id"], []).append(
                Department.model_validate(linked)
            )
        return grouped

    def load_pages_for(self, department_ids: Sequence[str]) -> dict[str, list[DepartmentPage]]:
        """Active pages for several departments in one join, keyed by department id.

        Each list is stably sorted by ``sort_order`` so equal orders keep the
        store's row order. Rows whose page definition is missing are dropped.
        """
        grouped: dict[str, list[DepartmentPage]] = {dept_id: [] for dept_id in department_ids}
        if not department_ids:
            return grouped
        rows = self._store.query_join(
            "department_pages",
            "page_id",
            "pages",
            PAGE_FIELDS,
            filters={"department_id": list(department_ids)},
            active_only=True,
            order_by=("sort_order", "id"),
        )
        for row in rows:
            linked = row["pages"]
            if linked is None:
                continue
            page = DepartmentPage(
                id=row["id"],
                department_id=row["department_id"],
                name=linked["name"],
                path=linked["path"],
                sort_order=row.get("sort_order") or 0,
                is_active=bool(row.get("is_active", True)),
            )
            grouped.setdefault(page.department_id, []).append(page)
        return {
            dept_id: sorted(dept_pages, key=lambda page: page.sort_order)
            for dept_id, dept_pages in grouped.items()
        }

    # ------------------------------------------------------------------
    # Composite
    # ------------------------------------------------------------------

    def load_full_tree(self, unit_id: str, degraded: list[str] | None = None) -> UnitTree:
        """Build the sidebar tree for *unit_id*.

        Group roots get one level of child trees; grandchildren are never
        expanded. Failures loading child units, child departments or any
        department's pages degrade to empty lists. A failure loading the
        root's own departments propagates as :class:`StoreError`.

        Raises:
            UnitNotFoundError: *unit_id* is neither cached nor in the store.
        """
        unit = self._resolve_unit(unit_id)
        group_root = self.is_group_root(unit)

        def _root_departments() -> list[Department]:
            with trace_span("hierarchy.departments") as span:
                found = self.load_departments(unit.id)
                if span:
                    span.annotate("count", len(found))
                return found

        def _children() -> list[BusinessUnit]:
            if not group_root:
                return []
            with trace_span("hierarchy.child_units") as span:
                found = fetch_or_default(
                    lambda: self.load_child_units(unit.id),
                    [],
                    what=f"child units of {unit.id}",
                    degraded=degraded,
                )
                if span:
                    span.annotate("count", len(found))
                return found

        root_departments, children = run_concurrently(
            [_root_departments, _children],
            max_workers=self._max_workers,
            sync=self._sync,
        )

        with trace_span("hierarchy.child_departments"):
            child_departments = self._departments_by_unit([c.id for c in children], degraded)

        department_ids = [d.id for d in root_departments]
        for child in children:
            department_ids.extend(d.id for d in child_departments.get(child.id, []))
        with trace_span("hierarchy.pages") as span:
            pages = self._pages_by_department(list(dict.fromkeys(department_ids)), degraded)
            if span:
                span.annotate("departments", len(pages))

        child_trees = [
            UnitTree(
                unit=child,
                is_group_root=self.is_group_root(child),
                departments=_nodes(child_departments.get(child.id, []), pages),
            )
            for child in children
        ]
        tree = UnitTree(
            unit=unit,
            is_group_root=group_root,
            departments=_nodes(root_departments, pages),
            children=child_trees,
        )
        log.debug(
            "hierarchy.tree_loaded",
            unit_id=unit.id,
            departments=len(tree.departments),
            children=len(child_trees),
        )
        return tree

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve_unit(self, unit_id: str) -> BusinessUnit:
        unit = self._cache.get(unit_id)
        if unit is not None:
            return unit
        row = self._store.query_by_id("business_units", unit_id)
        if row is None:
            raise UnitNotFoundError(unit_id)
        return BusinessUnit.model_validate(row)

    def _departments_by_unit(
        self, unit_ids: list[str], degraded: list[str] | None
    ) -> dict[str, list[Department]]:
        if not unit_ids:
            return {}
        batched = fetch_or_default(
            lambda: self.load_departments_for(unit_ids),
            None,
            what="child unit departments (batched)",
            degraded=degraded,
        )
        if batched is not None:
            return batched
        per_unit = run_concurrently(
            [
                lambda uid=uid: fetch_or_default(
                    lambda: self.load_departments(uid),
                    [],
                    what=f"departments of unit {uid}",
                    degraded=degraded,
                )
                for uid in unit_ids
            ],
            max_workers=self._max_workers,
            sync=self._sync,
        )
        return dict(zip(unit_ids, per_unit, strict=True))

    def _pages_by_department(
        self, department_ids: list[str], degraded: list[str] | None
    ) -> dict[str, list[DepartmentPage]]:
        if not department_ids:
            return {}
        batched = fetch_or_default(
            lambda: self.load_pages_for(department_ids),
            None,
            what="department pages (batched)",
            degraded=degraded,
        )
        if batched is not None:
            return batched
        per_department = run_concurrently(
            [
                lambda did=did: fetch_or_default(
                    lambda: self.load_pages(did),
                    [],
                    what=f"pages of department {did}",
                    degraded=degraded,
                )
                for did in department_ids
            ],
            max_workers=self._max_workers,
            sync=self._sync,
        )
        return dict(zip(department_ids, per_department, strict=True))


def _nodes(
    departments: list[Department], pages: dict[str, list[DepartmentPage]]
) -> list[DepartmentNode]:
    return [DepartmentNode(department=d, pages=pages.get(d.id, [])) for d in departments]
