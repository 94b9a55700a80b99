"""Shared pytest fixtures and test helpers for opsconsole tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Iterable
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest
import structlog
from click.testing import CliRunner
from sqlalchemy import insert
from sqlalchemy.engine import Engine

from opsconsole.core.session import ConsoleSession
from opsconsole.infrastructure.database.engine import init_database
from opsconsole.infrastructure.database.schema import (
    accounts,
    business_unit_departments,
    business_unit_types,
    business_units,
    customer_contacts,
    department_pages,
    departments,
    pages,
    properties,
    tank_types,
    tanks,
)
from opsconsole.infrastructure.store import SqlRecordStore, StoreError
from opsconsole.services.telemetry import _current_span, disable_telemetry

# ---------------------------------------------------------------------------
# Seed data
#
#   Acme Group (g1, GROUP_MANAGEMENT)
#   ├── North Region (u1)
#   │   └── Leeds Depot (u3)      grandchild, never expanded
#   └── South Region (u2)
#
#   g1: Operations (d1, no pages), Finance (d2), Archive (d4, inactive link)
#   u1: Dispatch (d3)
#   u2: Finance (d2)
#
#   Finance pages: Invoices (1), Ledger (2), Budget (2); one row points at
#   a missing page and one is inactive.
#
#   a1 (Jane Smith): pr1 [k1 steel, k2 unknown type], pr2 [k3 plastic],
#                    pr3 inactive; k4 inactive
#   a2 (Bob Jones):  pr4 [k6]
#   a3 (no holder):  pr5
# ---------------------------------------------------------------------------

SEED: list[tuple[Any, list[dict[str, Any]]]] = [
    (
        business_unit_types,
        [
            {"id": "t-group", "name": "GROUP_MANAGEMENT"},
            {"id": "t-region", "name": "REGIONAL"},
        ],
    ),
    (
        business_units,
        [
            {"id": "g1", "name": "Acme Group", "business_unit_type_id": "t-group"},
            {
                "id": "u1",
                "name": "North Region",
                "business_unit_type_id": "t-region",
                "parent_business_unit_id": "g1",
            },
            {
                "id": "u2",
                "name": "South Region",
                "business_unit_type_id": "t-region",
                "parent_business_unit_id": "g1",
                "logo_url": "https://cdn.example.com/south.png",
            },
            {
                "id": "u3",
                "name": "Leeds Depot",
                "business_unit_type_id": "t-region",
                "parent_business_unit_id": "u1",
            },
        ],
    ),
    (
        departments,
        [
            {"id": "d1", "name": "Operations", "menu_icon": "cog", "menu_path": "/ops"},
            {"id": "d2", "name": "Finance", "menu_icon": "coins", "menu_path": "/finance"},
            {"id": "d3", "name": "Dispatch", "menu_icon": "truck", "menu_path": "/dispatch"},
            {"id": "d4", "name": "Archive", "menu_icon": None, "menu_path": None},
        ],
    ),
    (
        business_unit_departments,
        [
            {"business_unit_id": "g1", "department_id": "d1", "is_active": True},
            {"business_unit_id": "g1", "department_id": "d2", "is_active": True},
            {"business_unit_id": "g1", "department_id": "d4", "is_active": False},
            {"business_unit_id": "u1", "department_id": "d3", "is_active": True},
            {"business_unit_id": "u2", "department_id": "d2", "is_active": True},
        ],
    ),
    (
        pages,
        [
            {"id": "p1", "name": "Ledger", "path": "/finance/ledger"},
            {"id": "p2", "name": "Invoices", "path": "/finance/invoices"},
            {"id": "p3", "name": "Routes", "path": "/dispatch/routes"},
            {"id": "p4", "name": "Budget", "path": "/finance/budget"},
        ],
    ),
    (
        department_pages,
        [
            {"department_id": "d2", "page_id": "p1", "sort_order": 2, "is_active": True},
            {"department_id": "d2", "page_id": "p2", "sort_order": 1, "is_active": True},
            {"department_id": "d2", "page_id": "p4", "sort_order": 2, "is_active": True},
            {"department_id": "d2", "page_id": "p-gone", "sort_order": 0, "is_active": True},
            {"department_id": "d3", "page_id": "p3", "sort_order": 0, "is_active": True},
            {"department_id": "d2", "page_id": "p3", "sort_order": 0, "is_active": False},
        ],
    ),
    (
        customer_contacts,
        [
            {
                "id": "c1",
                "first_name": "Jane",
                "last_name": "Smith",
                "email": "jane@example.com",
                "phone": "0113 000 0001",
            },
            {"id": "c2", "first_name": "Bob", "last_name": "Jones"},
        ],
    ),
    (
        accounts,
        [
            {
                "id": "a1",
                "account_holder_id": "c1",
                "account_type": "DOMESTIC",
                "billing_address": "1 High St",
                "billing_postcode": "LS1 1AA",
                "payment_terms_days": 30,
                "credit_limit": Decimal("1500.00"),
                "is_active": True,
                "created_at": datetime(2024, 3, 1, 9, 30),
            },
            {
                "id": "a2",
                "account_holder_id": "c2",
                "account_type": "COMMERCIAL",
                "billing_address": "Unit 4, Mill Lane",
                "is_active": True,
            },
            {"id": "a3", "account_holder_id": None, "account_type": "DOMESTIC", "is_active": True},
        ],
    ),
    (
        properties,
        [
            {
                "id": "pr1",
                "account_id": "a1",
                "business_unit_id": "u1",
                "address": "1 High St",
                "postcode": "LS1 1AA",
                "city": "Leeds",
                "property_type": "HOUSE",
                "access_notes": "Side gate",
                "is_active": True,
            },
            {
                "id": "pr2",
                "account_id": "a1",
                "business_unit_id": "u2",
                "address": "2 Low Rd",
                "postcode": "S1 2BB",
                "is_active": True,
            },
            {"id": "pr3", "account_id": "a1", "business_unit_id": "u1", "is_active": False},
            {
                "id": "pr4",
                "account_id": "a2",
                "business_unit_id": "u2",
                "address": "Mill Lane",
                "is_active": True,
            },
            {"id": "pr5", "account_id": "a3", "business_unit_id": "u1", "is_active": True},
        ],
    ),
    (
        tank_types,
        [
            {"id": "tt1", "name": "Bunded steel"},
            {"id": "tt2", "name": "Plastic"},
        ],
    ),
    (
        tanks,
        [
            {
                "id": "k1",
                "property_id": "pr1",
                "tank_name": "Main tank",
                "capacity_litres": 1200,
                "installation_date": date(2019, 5, 1),
                "next_service_date": date(2025, 5, 1),
                "tank_type_id": "tt1",
                "is_active": True,
            },
            {
                "id": "k2",
                "property_id": "pr1",
                "tank_name": "Spare tank",
                "tank_type_id": "tt-gone",
                "is_active": True,
            },
            {
                "id": "k3",
                "property_id": "pr2",
                "tank_name": "Garden tank",
                "tank_type_id": "tt2",
                "is_active": True,
            },
            {
                "id": "k4",
                "property_id": "pr2",
                "tank_name": "Old tank",
                "tank_type_id": "tt2",
                "is_active": False,
            },
            {"id": "k5", "property_id": "pr3", "tank_name": "Idle tank", "is_active": True},
            {
                "id": "k6",
                "property_id": "pr4",
                "tank_name": "Yard tank",
                "tank_type_id": "tt1",
                "is_active": True,
            },
        ],
    ),
]


def seed_database(engine: Engine) -> None:
    """Insert the fixture rows in foreign-key order."""
    with engine.begin() as conn:
        for table, rows in SEED:
            for row in rows:
                conn.execute(insert(table).values(**row))


# ---------------------------------------------------------------------------
# Store doubles
# ---------------------------------------------------------------------------

Call = tuple[str, str, tuple[Any, ...], dict[str, Any]]


class RecordingStore:
    """Wraps a RecordStore, records every call, and fails on demand.

    Args:
        inner: The store that answers calls that do not fail.
        fail_on: ``(shape, entity)`` pairs that always raise.
        fail_when: Predicate over ``(shape, entity, args, kwargs)``; when
            it returns True the call raises :class:`StoreError` instead.
    """

    def __init__(
        self,
        inner: Any,
        *,
        fail_on: Iterable[tuple[str, str]] = (),
        fail_when: Callable[[str, str, tuple[Any, ...], dict[str, Any]], bool] | None = None,
    ) -> None:
        self.inner = inner
        self.fail_on = set(fail_on)
        self.fail_when = fail_when
        self.calls: list[Call] = []

    def _fails(
        self, shape: str, entity: str, args: tuple[Any, ...], kwargs: dict[str, Any]
    ) -> bool:
        if (shape, entity) in self.fail_on:
            return True
        return self.fail_when is not None and self.fail_when(shape, entity, args, kwargs)

    def _call(self, shape: str, entity: str, *args: Any, **kwargs: Any) -> Any:
        self.calls.append((shape, entity, args, kwargs))
        if self._fails(shape, entity, args, kwargs):
            raise StoreError(entity, shape, "injected failure")
        return getattr(self.inner, shape)(entity, *args, **kwargs)

    def query_all(self, entity: str, **kwargs: Any) -> Any:
        return self._call("query_all", entity, **kwargs)

    def query_by_id(self, entity: str, record_id: str) -> Any:
        return self._call("query_by_id", entity, record_id)

    def query_by_foreign_key(self, entity: str, fk_field: str, value: Any, **kwargs: Any) -> Any:
        return self._call("query_by_foreign_key", entity, fk_field, value, **kwargs)

    def query_join(
        self, entity: str, join_field: str, related: str, related_fields: Any, **kwargs: Any
    ) -> Any:
        return self._call("query_join", entity, join_field, related, related_fields, **kwargs)

    def calls_for(self, shape: str | None = None, entity: str | None = None) -> list[Call]:
        return [
            call
            for call in self.calls
            if (shape is None or call[0] == shape) and (entity is None or call[1] == entity)
        ]

    def reset_calls(self) -> None:
        self.calls.clear()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_global_state() -> Generator[None]:
    """Undo logging, structlog and telemetry changes made by a test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    levels = {name: logging.getLogger(name).level for name in _tracked_loggers()}
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    for name in _tracked_loggers():
        logging.getLogger(name).setLevel(levels.get(name, logging.NOTSET))
    structlog.reset_defaults()
    disable_telemetry()
    _current_span.set(None)


def _tracked_loggers() -> list[str]:
    return [
        name
        for name in logging.Logger.manager.loggerDict
        if name.split(".")[0] in ("opsconsole", "sqlalchemy")
    ]


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'ops.db'}"


@pytest.fixture
def db_engine(db_url: str) -> Generator[Engine]:
    """Initialized and seeded SQLite engine."""
    engine = init_database(db_url)
    seed_database(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sql_store(db_engine: Engine) -> SqlRecordStore:
    return SqlRecordStore(db_engine)


@pytest.fixture
def store(sql_store: SqlRecordStore) -> RecordingStore:
    """Seeded store that records every call."""
    return RecordingStore(sql_store)


@pytest.fixture
def make_store(sql_store: SqlRecordStore) -> Callable[..., RecordingStore]:
    """Factory for recording stores over the seeded database with injected failures."""

    def _make(**kwargs: Any) -> RecordingStore:
        return RecordingStore(sql_store, **kwargs)

    return _make


@pytest.fixture
def session(store: RecordingStore) -> ConsoleSession:
    """Session over the recording store with group types resolved by name."""
    return ConsoleSession(store, group_type_name="GROUP_MANAGEMENT", sync=True)


@pytest.fixture
def _isolated_root(tmp_path: Path, db_engine: Engine, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp root whose default store is already seeded.

    Use via ``@pytest.mark.usefixtures("_isolated_root")`` on command test
    classes.
    """
    monkeypatch.delenv("OPSCONSOLE_CONFIG", raising=False)
    (tmp_path / "opsconsole.toml").write_text(
        '[store]\nurl = "sqlite:///{}"\n'.format((tmp_path / "ops.db").as_posix()),
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)
