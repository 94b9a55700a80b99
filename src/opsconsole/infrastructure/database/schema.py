"""SQLAlchemy Core table definitions for the console's read model.

Table and column names mirror the upstream store. Rows are created and
edited by the owning system; this package only reads them.

``department_pages.page_id`` and ``tanks.tank_type_id`` deliberately carry
no foreign key: upstream rows may point at definitions that no longer
exist, and the loaders drop or null those references.
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    Table,
    Text,
)

metadata = MetaData()

# ---------------------------------------------------------------------------
# Organization hierarchy
# ---------------------------------------------------------------------------

business_unit_types = Table(
    "business_unit_types",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False),
)

business_units = Table(
    "business_units",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False),
    Column("business_unit_type_id", Text, ForeignKey("business_unit_types.id")),
    Column("logo_url", Text),
    Column("parent_business_unit_id", Text, ForeignKey("business_units.id")),
)

departments = Table(
    "departments",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False),
    Column("menu_icon", Text),
    Column("menu_path", Text),
)

business_unit_departments = Table(
    "business_unit_departments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("business_unit_id", Text, ForeignKey("business_units.id"), nullable=False),
    Column("department_id", Text, ForeignKey("departments.id"), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True, server_default="1"),
)

pages = Table(
    "pages",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False),
    Column("path", Text, nullable=False),
)

department_pages = Table(
    "department_pages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("department_id", Text, ForeignKey("departments.id"), nullable=False),
    Column("page_id", Text),
    Column("sort_order", Integer, nullable=False, default=0, server_default="0"),
    Column("is_active", Boolean, nullable=False, default=True, server_default="1"),
)

# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

customer_contacts = Table(
    "customer_contacts",
    metadata,
    Column("id", Text, primary_key=True),
    Column("first_name", Text),
    Column("last_name", Text),
    Column("email", Text),
    Column("phone", Text),
    Column("mobile", Text),
)

accounts = Table(
    "accounts",
    metadata,
    Column("id", Text, primary_key=True),
    Column("account_holder_id", Text, ForeignKey("customer_contacts.id")),
    Column("account_type", Text, nullable=False),  # DOMESTIC | COMMERCIAL
    Column("billing_address", Text),
    Column("billing_postcode", Text),
    Column("billing_city", Text),
    Column("billing_county", Text),
    Column("payment_terms_days", Integer, default=30, server_default="30"),
    Column("credit_limit", Numeric(12, 2)),
    Column("is_active", Boolean, nullable=False, default=True, server_default="1"),
    Column("created_at", DateTime),
)

properties = Table(
    "properties",
    metadata,
    Column("id", Text, primary_key=True),
    Column("account_id", Text, ForeignKey("accounts.id"), nullable=False),
    Column("business_unit_id", Text, ForeignKey("business_units.id")),
    Column("address", Text),
    Column("postcode", Text),
    Column("city", Text),
    Column("county", Text),
    Column("property_type", Text),
    Column("access_notes", Text),
    Column("is_active", Boolean, nullable=False, default=True, server_default="1"),
)

tank_types = Table(
    "tank_types",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False),
)

tanks = Table(
    "tanks",
    metadata,
    Column("id", Text, primary_key=True),
    Column("property_id", Text, ForeignKey("properties.id"), nullable=False),
    Column("tank_name", Text, nullable=False),
    Column("capacity_litres", Integer),
    Column("installation_date", Date),
    Column("last_service_date", Date),
    Column("next_service_date", Date),
    Column("tank_type_id", Text),
    Column("is_active", Boolean, nullable=False, default=True, server_default="1"),
)

# ---------------------------------------------------------------------------
# Indexes for foreign-key lookups
# ---------------------------------------------------------------------------

Index("ix_business_units_parent", business_units.c.parent_business_unit_id)
Index("ix_bud_unit", business_unit_departments.c.business_unit_id)
Index("ix_department_pages_department", department_pages.c.department_id)
Index("ix_properties_account", properties.c.account_id)
Index("ix_properties_unit", properties.c.business_unit_id)
Index("ix_tanks_property", tanks.c.property_id)
