"""Record models and composed read views.

Records validate straight from store rows: fields whose names differ from
the store's column names carry the column name as an alias, and unknown
columns are ignored. Every model is frozen; this system never mutates
what it reads.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from opsconsole.domain.slugs import to_slug

_RECORD_CONFIG = ConfigDict(frozen=True, populate_by_name=True)


# --- Organization hierarchy ---


class BusinessUnitType(BaseModel):
    model_config = _RECORD_CONFIG

    id: str
    name: str


class BusinessUnit(BaseModel):
    """A group root or regional unit.

    ``slug`` is derived for routing only; ``id`` is the identity.
    """

    model_config = _RECORD_CONFIG

    id: str
    name: str
    type_id: str | None = Field(default=None, alias="business_unit_type_id")
    logo_url: str | None = None
    parent_id: str | None = Field(default=None, alias="parent_business_unit_id")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def slug(self) -> str:
        return to_slug(self.name)


class Department(BaseModel):
    model_config = _RECORD_CONFIG

    id: str
    name: str
    menu_icon: str | None = None
    menu_path: str | None = None


class DepartmentPage(BaseModel):
    """An activation row of ``department_pages`` merged with its page definition."""

    model_config = _RECORD_CONFIG

    id: int | str
    department_id: str
    name: str
    path: str
    sort_order: int = 0
    is_active: bool = True


# --- Clients ---


class Contact(BaseModel):
    model_config = _RECORD_CONFIG

    id: str
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    mobile: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class Account(BaseModel):
    """A billing account. ``account_type`` is ``DOMESTIC`` or ``COMMERCIAL`` upstream."""

    model_config = _RECORD_CONFIG

    id: str
    account_type: str
    contact_id: str | None = Field(default=None, alias="account_holder_id")
    billing_address: str | None = None
    billing_postcode: str | None = None
    billing_city: str | None = None
    billing_county: str | None = None
    payment_terms_days: int | None = None
    credit_limit: Decimal | None = None
    is_active: bool = True
    created_at: datetime | None = None


class Property(BaseModel):
    model_config = _RECORD_CONFIG

    id: str
    account_id: str
    business_unit_id: str | None = None
    address: str | None = None
    postcode: str | None = None
    city: str | None = None
    county: str | None = None
    property_type: str | None = None
    access_notes: str | None = None
    is_active: bool = True


class EquipmentType(BaseModel):
    model_config = _RECORD_CONFIG

    id: str
    name: str


class EquipmentUnit(BaseModel):
    """A tank installed at a property."""

    model_config = _RECORD_CONFIG

    id: str
    property_id: str
    name: str = Field(alias="tank_name")
    capacity_litres: int | None = None
    installation_date: date | None = None
    last_service_date: date | None = None
    next_service_date: date | None = None
    type_id: str | None = Field(default=None, alias="tank_type_id")
    is_active: bool = True


# --- Composed views ---


class DepartmentNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    department: Department
    pages: list[DepartmentPage] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_pages(self) -> bool:
        """False means the node renders without an expand toggle."""
        return bool(self.pages)


class UnitTree(BaseModel):
    """A unit with its departments and, for group roots, one level of children.

    Child trees never carry children of their own.
    """

    model_config = ConfigDict(frozen=True)

    unit: BusinessUnit
    is_group_root: bool = False
    departments: list[DepartmentNode] = Field(default_factory=list)
    children: list[UnitTree] = Field(default_factory=list)


class EquipmentView(BaseModel):
    model_config = ConfigDict(frozen=True)

    unit: EquipmentUnit
    type: EquipmentType | None = None


class PropertyView(BaseModel):
    model_config = ConfigDict(frozen=True)

    property: Property
    equipment: list[EquipmentView] = Field(default_factory=list)


class ClientAggregate(BaseModel):
    """Request-scoped composition of an account for the client detail view."""

    model_config = ConfigDict(frozen=True)

    account: Account
    contact: Contact | None = None
    properties: list[PropertyView] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def equipment_count(self) -> int:
        return sum(len(view.equipment) for view in self.properties)


class AccountSummary(BaseModel):
    """One row of a unit's client directory."""

    model_config = ConfigDict(frozen=True)

    account: Account
    contact: Contact | None = None


class PropertyDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    property: Property
    account: Account | None = None
    contact: Contact | None = None
    equipment: list[EquipmentView] = Field(default_factory=list)
