"""ConsoleService — ServiceResult facade over a ConsoleSession.

Translates hard failures into error codes and keeps soft-failure notes
under ``meta["degraded"]``:

- ``UNIT_NOT_FOUND``     no unit matches the slug or id
- ``ACCOUNT_NOT_FOUND``  client detail for an unknown account
- ``PROPERTY_NOT_FOUND`` property detail for an unknown property
- ``CACHE_EMPTY``        the unit scan failed; every lookup misses
- ``STORE_ERROR``        a read with no soft default failed
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from opsconsole.core.errors import (
    AccountNotFoundError,
    PropertyNotFoundError,
    UnitNotFoundError,
)
from opsconsole.infrastructure.database.engine import init_database
from opsconsole.infrastructure.database.schema import metadata
from opsconsole.infrastructure.store import StoreError
from opsconsole.services.result import ServiceResult
from opsconsole.services.telemetry import traced

if TYPE_CHECKING:
    from opsconsole.core.session import ConsoleSession
    from opsconsole.domain.models import BusinessUnit


def _unit_data(unit: BusinessUnit, *, group_root: bool) -> dict[str, Any]:
    return {**unit.model_dump(mode="json"), "is_group_root": group_root}


class ConsoleService:
    """Outer-surface operations for one session."""

    def __init__(self, session: ConsoleSession) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Units and navigation
    # ------------------------------------------------------------------

    @traced
    def list_units(self) -> ServiceResult:
        op = "list_units"
        degraded: list[str] = []
        if not self._session.ensure_cache(degraded):
            return self._cache_empty(op)
        cache = self._session.unit_cache
        items = [
            _unit_data(unit, group_root=self._session.is_group_root(unit)) for unit in cache.units
        ]
        return ServiceResult.success(
            op,
            {"count": len(items), "items": items, "collisions": sorted(cache.collisions)},
            degraded=degraded,
        )

    @traced
    def resolve_unit(self, slug: str) -> ServiceResult:
        op = "resolve_unit"
        degraded: list[str] = []
        if not self._session.ensure_cache(degraded):
            return self._cache_empty(op)
        context = self._session.navigate(slug)
        if context is None:
            return ServiceResult.failure(
                op, "UNIT_NOT_FOUND", f"No business unit for slug '{slug}'", slug=slug
            )
        data = _unit_data(context.unit, group_root=self._session.is_group_root(context.unit))
        data["tree_cached"] = context.tree is not None
        return ServiceResult.success(op, data, degraded=degraded)

    @traced
    def unit_tree(
        self,
        home: str,
        *,
        expand: Sequence[str] = (),
        collapse: Sequence[str] = (),
    ) -> ServiceResult:
        """Start the session at *home* and return its sidebar tree."""
        op = "unit_tree"
        degraded: list[str] = []
        try:
            tree = self._session.start(home, degraded)
        except UnitNotFoundError as exc:
            return self._unit_not_found(op, exc)
        except StoreError as exc:
            return self._store_error(op, exc)

        expansion = self._session.expansion
        for key in expand:
            expansion.set(key, True)
        for key in collapse:
            expansion.set(key, False)
        return ServiceResult.success(
            op,
            {"tree": tree.model_dump(mode="json"), "expansion": expansion.snapshot()},
            degraded=degraded,
        )

    @traced
    def navigate(self, home: str, targets: Sequence[str]) -> ServiceResult:
        """Start at *home*, then resolve each target slug in turn."""
        op = "navigate"
        degraded: list[str] = []
        try:
            self._session.start(home, degraded)
        except UnitNotFoundError as exc:
            return self._unit_not_found(op, exc)
        except StoreError as exc:
            return self._store_error(op, exc)

        steps: list[dict[str, Any]] = []
        for slug in targets:
            context = self._session.navigate(slug)
            if context is None:
                steps.append({"slug": slug, "resolved": False})
                continue
            steps.append(
                {
                    "slug": slug,
                    "resolved": True,
                    "unit_id": context.unit.id,
                    "name": context.unit.name,
                    "tree_cached": context.tree is not None,
                }
            )
        current = self._session.current_unit
        return ServiceResult.success(
            op,
            {
                "home": home,
                "steps": steps,
                "current": current.id if current else None,
                "tree_loads": self._session.tree_loads,
            },
            degraded=degraded,
        )

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    @traced
    def client_detail(self, account_id: str) -> ServiceResult:
        op = "client_detail"
        degraded: list[str] = []
        try:
            aggregate = self._session.clients.load(account_id, degraded)
        except AccountNotFoundError as exc:
            return ServiceResult.failure(
                op, "ACCOUNT_NOT_FOUND", str(exc), account_id=exc.account_id
            )
        except StoreError as exc:
            return self._store_error(op, exc)
        return ServiceResult.success(op, aggregate.model_dump(mode="json"), degraded=degraded)

    @traced
    def property_detail(self, property_id: str) -> ServiceResult:
        op = "property_detail"
        degraded: list[str] = []
        try:
            detail = self._session.clients.load_property(property_id, degraded)
        except PropertyNotFoundError as exc:
            return ServiceResult.failure(
                op, "PROPERTY_NOT_FOUND", str(exc), property_id=exc.property_id
            )
        except StoreError as exc:
            return self._store_error(op, exc)
        return ServiceResult.success(op, detail.model_dump(mode="json"), degraded=degraded)

    @traced
    def client_list(self, unit_slug: str) -> ServiceResult:
        op = "client_list"
        degraded: list[str] = []
        if not self._session.ensure_cache(degraded):
            return self._cache_empty(op)
        unit = self._session.unit_cache.lookup(unit_slug)
        if unit is None:
            return self._unit_not_found(op, UnitNotFoundError(unit_slug))
        try:
            summaries = self._session.directory.list_accounts(
                unit, group_root=self._session.is_group_root(unit), degraded=degraded
            )
        except StoreError as exc:
            return self._store_error(op, exc)
        items = [summary.model_dump(mode="json") for summary in summaries]
        return ServiceResult.success(
            op,
            {"unit_id": unit.id, "count": len(items), "items": items},
            degraded=degraded,
        )

    # ------------------------------------------------------------------
    # Error helpers
    # ------------------------------------------------------------------

    def _unit_not_found(self, op: str, exc: UnitNotFoundError) -> ServiceResult:
        if not self._session.unit_cache.is_built:
            return self._cache_empty(op)
        return ServiceResult.failure(op, "UNIT_NOT_FOUND", str(exc), ref=exc.ref)

    @staticmethod
    def _cache_empty(op: str) -> ServiceResult:
        return ServiceResult.failure(
            op, "CACHE_EMPTY", "Business units could not be loaded; sign in again to retry"
        )

    @staticmethod
    def _store_error(op: str, exc: StoreError) -> ServiceResult:
        return ServiceResult.failure(
            op, "STORE_ERROR", str(exc), entity=exc.entity, shape=exc.shape
        )


@traced
def init_schema(url: str) -> ServiceResult:
    """Create the read-model tables at *url* (idempotent)."""
    try:
        engine = init_database(url)
    except SQLAlchemyError as exc:
        return ServiceResult.failure("init_schema", "STORE_ERROR", str(exc), url=url)
    try:
        return ServiceResult(
            ok=True,
            op="init_schema",
            data={"url": engine.url.render_as_string(), "tables": sorted(metadata.tables)},
        )
    finally:
        engine.dispose()
