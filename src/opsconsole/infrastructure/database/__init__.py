"""Database engine and read-model schema via SQLAlchemy Core."""

from opsconsole.infrastructure.database.engine import create_db_engine, init_database
from opsconsole.infrastructure.database.schema import (
    accounts,
    business_unit_departments,
    business_unit_types,
    business_units,
    customer_contacts,
    department_pages,
    departments,
    metadata,
    pages,
    properties,
    tank_types,
    tanks,
)

__all__ = [
    "accounts",
    "business_unit_departments",
    "business_unit_types",
    "business_units",
    "create_db_engine",
    "customer_contacts",
    "department_pages",
    "departments",
    "init_database",
    "metadata",
    "pages",
    "properties",
    "tank_types",
    "tanks",
]
