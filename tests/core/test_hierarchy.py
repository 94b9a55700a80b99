"""Tests for department/page tree loading."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from opsconsole.core.errors import UnitNotFoundError
from opsconsole.core.hierarchy import HierarchyLoader
from opsconsole.core.unit_cache import UnitCache
from opsconsole.domain.models import BusinessUnit
from opsconsole.infrastructure.store import StoreError


def _loader(store: Any, *, build: bool = True, **kwargs: Any) -> HierarchyLoader:
    cache = UnitCache(store)
    if build:
        cache.build()
    kwargs.setdefault("group_type_name", "GROUP_MANAGEMENT")
    kwargs.setdefault("sync", True)
    loader = HierarchyLoader(store, cache, **kwargs)
    loader.resolve_group_types()
    store.reset_calls()
    return loader


def _filter_ids(kwargs: dict[str, Any], field: str) -> list[str]:
    value = kwargs["filters"][field]
    return [value] if isinstance(value, str) else list(value)


class TestGroupRoots:
    def test_resolved_by_type_name(self, store: Any) -> None:
        loader = _loader(store)
        assert loader.is_group_root(BusinessUnit(id="g1", name="G", type_id="t-group"))
        assert not loader.is_group_root(BusinessUnit(id="u1", name="U", type_id="t-region"))
        assert not loader.is_group_root(BusinessUnit(id="x", name="X"))

    def test_configured_ids(self, store: Any) -> None:
        loader = _loader(store, group_type_ids=["t-region"], group_type_name=None)
        assert loader.is_group_root(BusinessUnit(id="u1", name="U", type_id="t-region"))
        assert not loader.is_group_root(BusinessUnit(id="g1", name="G", type_id="t-group"))

    def test_type_scan_failure_is_soft(self, make_store: Callable[..., Any]) -> None:
        store = make_store(fail_on=[("query_all", "business_unit_types")])
        loader = HierarchyLoader(
            store, UnitCache(store), group_type_ids=["t-x"], group_type_name="GROUP_MANAGEMENT"
        )
        degraded: list[str] = []
        assert loader.resolve_group_types(degraded) == frozenset({"t-x"})
        assert len(degraded) == 1

    def test_reset_forgets_resolved_ids(self, store: Any) -> None:
        loader = _loader(store, group_type_ids=["t-x"])
        assert loader.group_type_ids == frozenset({"t-x", "t-group"})
        loader.reset()
        assert loader.group_type_ids == frozenset({"t-x"})
        assert not loader.is_group_root(BusinessUnit(id="g1", name="G", type_id="t-group"))


class TestSingleKeyLoads:
    def test_departments_active_only(self, store: Any) -> None:
        loader = _loader(store)
        assert sorted(d.id for d in loader.load_departments("g1")) == ["d1", "d2"]

    def test_departments_none(self, store: Any) -> None:
        assert _loader(store).load_departments("u3") == []

    def test_pages_sorted_stably(self, store: Any) -> None:
        pages = _loader(store).load_pages("d2")
        assert [p.name for p in pages] == ["Invoices", "Ledger", "Budget"]
        assert [p.sort_order for p in pages] == [1, 2, 2]
        assert pages[0].path == "/finance/invoices"
        assert pages[0].department_id == "d2"

    def test_pages_none(self, store: Any) -> None:
        assert _loader(store).load_pages("d1") == []

    def test_child_units_sorted(self, store: Any) -> None:
        loader = _loader(store)
        assert [u.name for u in loader.load_child_units("g1")] == ["North Region", "South Region"]
        assert loader.load_child_units("u2") == []

    def test_child_units_exclude_self_parent(self) -> None:
        class _Store:
            def query_by_foreign_key(self, *_: Any, **__: Any) -> list[dict[str, Any]]:
                return [
                    {"id": "g1", "name": "Self", "parent_business_unit_id": "g1"},
                    {"id": "u9", "name": "Zed", "parent_business_unit_id": "g1"},
                    {"id": "u8", "name": "Alpha", "parent_business_unit_id": "g1"},
                ]

        loader = HierarchyLoader(_Store(), UnitCache(_Store()))  # type: ignore[arg-type]
        assert [u.id for u in loader.load_child_units("g1")] == ["u8", "u9"]

    def test_missing_department_record_dropped(self) -> None:
        class _Store:
            def query_join(self, *_: Any, **__: Any) -> list[dict[str, Any]]:
                return [
                    {"business_unit_id": "u1", "department_id": "dx", "departments": None},
                    {
                        "business_unit_id": "u1",
                        "department_id": "d1",
                        "departments": {"id": "d1", "name": "Ops"},
                    },
                ]

        loader = HierarchyLoader(_Store(), UnitCache(_Store()))  # type: ignore[arg-type]
        assert [d.id for d in loader.load_departments("u1")] == ["d1"]

    def test_pages_sorted_whatever_the_row_order(self) -> None:
        class _Store:
            def query_join(self, *_: Any, **__: Any) -> list[dict[str, Any]]:
                return [
                    {
                        "id": row_id,
                        "department_id": "d9",
                        "sort_order": order,
                        "is_active": True,
                        "pages": {"id": f"p-{name}", "name": name, "path": f"/{name}"},
                    }
                    for row_id, order, name in [
                        ("r1", 2, "C"),
                        ("r2", 5, "A"),
                        ("r3", 2, "B"),
                        ("r4", 1, "Z"),
                    ]
                ]

        loader = HierarchyLoader(_Store(), UnitCache(_Store()))  # type: ignore[arg-type]
        assert [p.name for p in loader.load_pages("d9")] == ["Z", "C", "B", "A"]


class TestBatchedLoads:
    def test_departments_for_many_units(self, store: Any) -> None:
        grouped = _loader(store).load_departments_for(["u1", "u2", "u3"])
        assert [d.id for d in grouped["u1"]] == ["d3"]
        assert [d.id for d in grouped["u2"]] == ["d2"]
        assert grouped["u3"] == []
        assert len(store.calls_for("query_join")) == 1

    def test_pages_for_many_departments(self, store: Any) -> None:
        grouped = _loader(store).load_pages_for(["d1", "d2", "d3"])
        assert grouped["d1"] == []
        assert [p.name for p in grouped["d2"]] == ["Invoices", "Ledger", "Budget"]
        assert [p.name for p in grouped["d3"]] == ["Routes"]

    def test_empty_keys_skip_store(self, store: Any) -> None:
        loader = _loader(store)
        assert loader.load_departments_for([]) == {}
        assert loader.load_pages_for([]) == {}
        assert store.calls == []


class TestFullTree:
    def test_group_root_tree(self, store: Any) -> None:
        tree = _loader(store).load_full_tree("g1")
        assert tree.is_group_root
        assert tree.unit.id == "g1"
        by_id = {node.department.id: node for node in tree.departments}
        assert set(by_id) == {"d1", "d2"}
        assert by_id["d1"].has_pages is False
        assert [p.name for p in by_id["d2"].pages] == ["Invoices", "Ledger", "Budget"]

        assert [child.unit.id for child in tree.children] == ["u1", "u2"]
        north, south = tree.children
        assert [node.department.name for node in north.departments] == ["Dispatch"]
        assert [p.name for p in north.departments[0].pages] == ["Routes"]
        assert [node.department.id for node in south.departments] == ["d2"]
        assert len(south.departments[0].pages) == 3

    def test_children_never_expand_grandchildren(self, store: Any) -> None:
        tree = _loader(store).load_full_tree("g1")
        for child in tree.children:
            assert child.children == []
        assert "u3" not in {child.unit.id for child in tree.children}

    def test_bounded_round_trips(self, store: Any) -> None:
        _loader(store).load_full_tree("g1")
        assert len(store.calls_for("query_join", "business_unit_departments")) == 2
        assert len(store.calls_for("query_join", "department_pages")) == 1
        assert len(store.calls_for("query_by_foreign_key", "business_units")) == 1
        assert store.calls_for("query_by_id") == []
        assert len(store.calls) == 4

    def test_regional_unit_has_no_children(self, store: Any) -> None:
        tree = _loader(store).load_full_tree("u1")
        assert not tree.is_group_root
        assert tree.children == []
        assert store.calls_for("query_by_foreign_key", "business_units") == []

    def test_uncached_unit_read_from_store(self, store: Any) -> None:
        tree = _loader(store, build=False).load_full_tree("u2")
        assert tree.unit.name == "South Region"
        assert len(store.calls_for("query_by_id", "business_units")) == 1

    def test_unknown_unit(self, store: Any) -> None:
        with pytest.raises(UnitNotFoundError) as exc_info:
            _loader(store).load_full_tree("nope")
        assert exc_info.value.ref == "nope"

    def test_concurrent_matches_sync(self, store: Any) -> None:
        sync_tree = _loader(store).load_full_tree("g1")
        threaded_tree = _loader(store, sync=False, max_workers=4).load_full_tree("g1")
        assert threaded_tree == sync_tree


class TestFullTreeFailures:
    def test_root_departments_failure_propagates(self, make_store: Callable[..., Any]) -> None:
        store = make_store(
            fail_when=lambda s, e, a, k: (
                e == "business_unit_departments" and _filter_ids(k, "business_unit_id") == ["g1"]
            )
        )
        with pytest.raises(StoreError):
            _loader(store).load_full_tree("g1")

    def test_child_units_failure_degrades(self, make_store: Callable[..., Any]) -> None:
        store = make_store(fail_on=[("query_by_foreign_key", "business_units")])
        degraded: list[str] = []
        tree = _loader(store).load_full_tree("g1", degraded)
        assert tree.children == []
        assert {node.department.id for node in tree.departments} == {"d1", "d2"}
        assert any("child units of g1" in note for note in degraded)

    def test_child_departments_fall_back_per_unit(self, make_store: Callable[..., Any]) -> None:
        store = make_store(
            fail_when=lambda s, e, a, k: (
                e == "business_unit_departments" and "u2" in _filter_ids(k, "business_unit_id")
            )
        )
        degraded: list[str] = []
        tree = _loader(store).load_full_tree("g1", degraded)
        north, south = tree.children
        assert [node.department.id for node in north.departments] == ["d3"]
        assert south.departments == []
        assert len(degraded) == 2
        assert any("departments of unit u2" in note for note in degraded)

    def test_pages_fall_back_per_department(self, make_store: Callable[..., Any]) -> None:
        def _fail(s: str, e: str, a: Any, k: dict[str, Any]) -> bool:
            if e != "department_pages":
                return False
            ids = _filter_ids(k, "department_id")
            return len(ids) > 1 or "d2" in ids

        store = make_store(fail_when=_fail)
        degraded: list[str] = []
        tree = _loader(store).load_full_tree("g1", degraded)

        by_id = {node.department.id: node for node in tree.departments}
        assert by_id["d2"].pages == []
        assert by_id["d2"].has_pages is False
        north = tree.children[0]
        assert [p.name for p in north.departments[0].pages] == ["Routes"]
        assert any("pages of department d2" in note for note in degraded)
        assert not any("pages of department d3" in note for note in degraded)
