"""Client-side aggregates: account detail, property detail, unit directory.

Every loader here reads each entity kind at most once per call, keyed by
the full id set of the previous step. An account with 40 properties and
200 tanks costs the same five round trips as one with a single tank.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

import structlog

from opsconsole.core.errors import AccountNotFoundError, PropertyNotFoundError
from opsconsole.core.fallback import fetch_or_default, run_concurrently
from opsconsole.domain.models import (
    Account,
    AccountSummary,
    ClientAggregate,
    Contact,
    EquipmentType,
    EquipmentUnit,
    EquipmentView,
    Property,
    PropertyDetail,
    PropertyView,
)
from opsconsole.services.telemetry import trace_span

if TYPE_CHECKING:
    from opsconsole.core.unit_cache import UnitCache
    from opsconsole.domain.models import BusinessUnit
    from opsconsole.infrastructure.store import RecordStore

log = structlog.get_logger(__name__)


class ClientAggregateLoader:
    """Composes the client detail and property detail views.

    Args:
        store: Record store to read from.
        max_workers: Worker threads for independent steps.
        sync: Run independent steps inline.
    """

    def __init__(self, store: RecordStore, *, max_workers: int = 4, sync: bool = False) -> None:
        self._store = store
        self._max_workers = max_workers
        self._sync = sync

    def load(self, account_id: str, degraded: list[str] | None = None) -> ClientAggregate:
        """Account, holder contact, active properties and their active tanks.

        Only the account read is a hard dependency. A failed contact read
        yields ``contact=None``; failed property, tank or tank-type reads
        yield empty lists or ``type=None``.

        Raises:
            AccountNotFoundError: No account has *account_id*.
            StoreError: The account read itself failed.
        """
        with trace_span("clients.account"):
            row = self._store.query_by_id("accounts", account_id)
        if row is None:
            raise AccountNotFoundError(account_id)
        account = Account.model_validate(row)

        contact, properties = run_concurrently(
            [
                lambda: self._contact(account, degraded),
                lambda: self._properties(account.id, degraded),
            ],
            max_workers=self._max_workers,
            sync=self._sync,
        )

        by_property = self._equipment_by_property([p.id for p in properties], degraded)
        aggregate = ClientAggregate(
            account=account,
            contact=contact,
            properties=[
                PropertyView(property=prop, equipment=by_property.get(prop.id, []))
                for prop in properties
            ],
        )
        log.debug(
            "clients.aggregate_loaded",
            account_id=account.id,
            properties=len(aggregate.properties),
            equipment=aggregate.equipment_count,
        )
        return aggregate

    def load_property(self, property_id: str, degraded: list[str] | None = None) -> PropertyDetail:
        """One property with its owning account, holder contact and tanks.

        Raises:
            PropertyNotFoundError: No property has *property_id*.
        """
        row = self._store.query_by_id("properties", property_id)
        if row is None:
            raise PropertyNotFoundError(property_id)
        prop = Property.model_validate(row)

        def _owner() -> tuple[Account | None, Contact | None]:
            account_row = fetch_or_default(
                lambda: self._store.query_by_id("accounts", prop.account_id),
                None,
                what=f"account {prop.account_id}",
                degraded=degraded,
            )
            if account_row is None:
                return None, None
            account = Account.model_validate(account_row)
            return account, self._contact(account, degraded)

        owner, by_property = run_concurrently(
            [_owner, lambda: self._equipment_by_property([prop.id], degraded)],
            max_workers=self._max_workers,
            sync=self._sync,
        )
        account, contact = owner
        return PropertyDetail(
            property=prop,
            account=account,
            contact=contact,
            equipment=by_property.get(prop.id, []),
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _contact(self, account: Account, degraded: list[str] | None) -> Contact | None:
        if not account.contact_id:
            return None
        contact_id = account.contact_id
        with trace_span("clients.contact"):
            row = fetch_or_default(
                lambda: self._store.query_by_id("customer_contacts", contact_id),
                None,
                what=f"contact {contact_id}",
                degraded=degraded,
            )
        return Contact.model_validate(row) if row is not None else None

    def _properties(self, account_id: str, degraded: list[str] | None) -> list[Property]:
        with trace_span("clients.properties") as span:
            rows = fetch_or_default(
                lambda: self._store.query_by_foreign_key(
                    "properties", "account_id", account_id, active_only=True
                ),
                [],
                what=f"properties of account {account_id}",
                degraded=degraded,
            )
            if span:
                span.annotate("count", len(rows))
        return [Property.model_validate(row) for row in rows]

    def _equipment_by_property(
        self, property_ids: list[str], degraded: list[str] | None
    ) -> dict[str, list[EquipmentView]]:
        """Active tanks of *property_ids* with resolved types, grouped by property."""
        if not property_ids:
            return {}
        with trace_span("clients.equipment") as span:
            rows = fetch_or_default(
                lambda: self._store.query_by_foreign_key(
                    "tanks", "property_id", property_ids, active_only=True
                ),
                [],
                what="equipment",
                degraded=degraded,
            )
            if span:
                span.annotate("count", len(rows))
        units = [EquipmentUnit.model_validate(row) for row in rows]
        types = self._equipment_types(units, degraded)

        grouped: dict[str, list[EquipmentView]] = defaultdict(list)
        for unit in units:
            resolved = types.get(unit.type_id) if unit.type_id else None
            grouped[unit.property_id].append(EquipmentView(unit=unit, type=resolved))
        return dict(grouped)

    def _equipment_types(
        self, units: list[EquipmentUnit], degraded: list[str] | None
    ) -> dict[str, EquipmentType]:
        type_ids = list(dict.fromkeys(u.type_id for u in units if u.type_id))
        if not type_ids:
            return {}
        with trace_span("clients.equipment_types"):
            rows = fetch_or_default(
                lambda: self._store.query_by_foreign_key("tank_types", "id", type_ids),
                [],
                what="equipment types",
                degraded=degraded,
            )
        return {str(row["id"]): EquipmentType.model_validate(row) for row in rows}


class ClientDirectory:
    """Accounts visible from a business unit.

    A regional unit sees the accounts owning its active properties; a
    group root sees those of all its direct children. Children come from
    the unit cache, not the store.
    """

    def __init__(self, store: RecordStore, unit_cache: UnitCache) -> None:
        self._store = store
        self._cache = unit_cache

    def list_accounts(
        self,
        unit: BusinessUnit,
        *,
        group_root: bool,
        degraded: list[str] | None = None,
    ) -> list[AccountSummary]:
        if group_root:
            unit_ids = [child.id for child in self._cache.children_of(unit.id)]
        else:
            unit_ids = [unit.id]
        if not unit_ids:
            return []

        property_rows = fetch_or_default(
            lambda: self._store.query_by_foreign_key(
                "properties", "business_unit_id", unit_ids, active_only=True
            ),
            [],
            what=f"properties of unit {unit.id}",
            degraded=degraded,
        )
        account_ids = list(dict.fromkeys(row["account_id"] for row in property_rows))
        if not account_ids:
            return []

        accounts = [
            Account.model_validate(row)
            for row in self._store.query_by_foreign_key("accounts", "id", account_ids)
        ]
        holder_ids = list(dict.fromkeys(a.contact_id for a in accounts if a.contact_id))
        contact_rows = (
            fetch_or_default(
                lambda: self._store.query_by_foreign_key("customer_contacts", "id", holder_ids),
                [],
                what="account holder contacts",
                degraded=degraded,
            )
            if holder_ids
            else []
        )
        contacts = {str(row["id"]): Contact.model_validate(row) for row in contact_rows}
        return [
            AccountSummary(
                account=account,
                contact=contacts.get(account.contact_id) if account.contact_id else None,
            )
            for account in accounts
        ]
