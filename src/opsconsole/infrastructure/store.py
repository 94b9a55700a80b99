"""Read-only record store port and its SQLAlchemy implementation.

The core consumes exactly five query shapes: full scan, by id, by foreign
key (scalar or set), activation join, each optionally restricted to
``is_active = true`` rows. Anything that can answer these shapes (SQL,
HTTP, RPC) can back the console.

Rows are plain dicts keyed by column name. Join rows additionally carry
the related record as a nested dict under the related entity's name, or
``None`` when the link points at a missing record.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Collection, Mapping, Sequence
from typing import Any, Protocol

from sqlalchemy import Table, select
from sqlalchemy.exc import SQLAlchemyError

from opsconsole.infrastructure.database.schema import metadata

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class StoreError(Exception):
    """A store read failed; carries the entity and query shape."""

    def __init__(self, entity: str, shape: str, message: str) -> None:
        super().__init__(f"{shape}({entity}): {message}")
        self.entity = entity
        self.shape = shape


class RecordStore(Protocol):
    """The query port used by every loader."""

    def query_all(
        self,
        entity: str,
        *,
        active_only: bool = False,
        order_by: Sequence[str] = (),
    ) -> list[Row]: ...

    def query_by_id(self, entity: str, record_id: str) -> Row | None: ...

    def query_by_foreign_key(
        self,
        entity: str,
        fk_field: str,
        value: Any,
        *,
        active_only: bool = False,
        order_by: Sequence[str] = (),
    ) -> list[Row]: ...

    def query_join(
        self,
        entity: str,
        join_field: str,
        related: str,
        related_fields: Sequence[str],
        *,
        filters: Mapping[str, Any],
        active_only: bool = False,
        order_by: Sequence[str] = (),
    ) -> list[Row]: ...


def is_collection(value: Any) -> bool:
    """True for set-like filter values (``IN``); strings count as scalars."""
    return isinstance(value, Collection) and not isinstance(value, (str, bytes))


class SqlRecordStore:
    """:class:`RecordStore` over a SQLAlchemy engine and the schema tables.

    Each call opens its own connection, so one instance may serve
    concurrent loader steps from worker threads.
    """

    def __init__(self, engine: Any) -> None:
        self._engine = engine

    @property
    def engine(self) -> Any:
        return self._engine

    # ------------------------------------------------------------------
    # Query shapes
    # ------------------------------------------------------------------

    def query_all(
        self,
        entity: str,
        *,
        active_only: bool = False,
        order_by: Sequence[str] = (),
    ) -> list[Row]:
        table = _table(entity)
        stmt = select(table)
        if active_only:
            stmt = stmt.where(_column(table, "is_active").is_(True))
        stmt = stmt.order_by(*(_column(table, name) for name in order_by))
        return self._fetch(entity, "query_all", stmt)

    def query_by_id(self, entity: str, record_id: str) -> Row | None:
        table = _table(entity)
        stmt = select(table).where(_column(table, "id") == record_id)
        rows = self._fetch(entity, "query_by_id", stmt)
        return rows[0] if rows else None

    def query_by_foreign_key(
        self,
        entity: str,
        fk_field: str,
        value: Any,
        *,
        active_only: bool = False,
        order_by: Sequence[str] = (),
    ) -> list[Row]:
        table = _table(entity)
        if is_collection(value) and not value:
            return []
        stmt = select(table).where(_match(_column(table, fk_field), value))
        if active_only:
            stmt = stmt.where(_column(table, "is_active").is_(True))
        stmt = stmt.order_by(*(_column(table, name) for name in order_by))
        return self._fetch(entity, "query_by_foreign_key", stmt)

    def query_join(
        self,
        entity: str,
        join_field: str,
        related: str,
        related_fields: Sequence[str],
        *,
        filters: Mapping[str, Any],
        active_only: bool = False,
        order_by: Sequence[str] = (),
    ) -> list[Row]:
        table = _table(entity)
        other = _table(related)
        if any(is_collection(value) and not value for value in filters.values()):
            return []

        labels = {f"{related}__{name}": name for name in related_fields}
        stmt = select(
            table,
            _column(other, "id").label(f"{related}__id"),
            *(_column(other, name).label(label) for label, name in labels.items()),
        ).select_from(table.outerjoin(other, _column(table, join_field) == other.c.id))
        for field_name, value in filters.items():
            stmt = stmt.where(_match(_column(table, field_name), value))
        if active_only:
            stmt = stmt.where(_column(table, "is_active").is_(True))
        stmt = stmt.order_by(*(_column(table, name) for name in order_by))

        rows = self._fetch(entity, "query_join", stmt)
        joined: list[Row] = []
        for row in rows:
            base = {key: val for key, val in row.items() if not key.startswith(f"{related}__")}
            if row[f"{related}__id"] is None:
                base[related] = None
            else:
                nested = {"id": row[f"{related}__id"]}
                nested.update({name: row[label] for label, name in labels.items()})
                base[related] = nested
            joined.append(base)
        return joined

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _fetch(self, entity: str, shape: str, stmt: Any) -> list[Row]:
        started = time.perf_counter()
        try:
            with self._engine.connect() as conn:
                rows = [dict(row) for row in conn.execute(stmt).mappings().all()]
        except SQLAlchemyError as exc:
            raise StoreError(entity, shape, str(exc)) from exc
        logger.debug(
            "store.%s %s rows=%d %.2fms",
            shape,
            entity,
            len(rows),
            (time.perf_counter() - started) * 1000,
        )
        return rows


def _table(entity: str) -> Table:
    table = metadata.tables.get(entity)
    if table is None:
        msg = f"Unknown entity: {entity!r}"
        raise ValueError(msg)
    return table


def _column(table: Table, name: str) -> Any:
    if name not in table.c:
        msg = f"Unknown field {name!r} on {table.name!r}"
        raise ValueError(msg)
    return table.c[name]


def _match(column: Any, value: Any) -> Any:
    if is_collection(value):
        return column.in_(list(value))
    return column == value
