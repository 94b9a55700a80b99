"""Database engine setup.

SQLAlchemy Core (not ORM) is used: every read is a single shaped query
whose rows are validated into frozen pydantic records, so identity maps
and unit-of-work tracking buy nothing.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from opsconsole.infrastructure.database.schema import metadata


def create_db_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine for *url*; SQLite connections get WAL and foreign keys."""
    engine = create_engine(url, echo=echo)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def init_database(url: str, *, echo: bool = False) -> Engine:
    """Create every read-model table in the database at *url*.

    Idempotent — existing tables are left untouched. Returns the engine
    ready for use.
    """
    engine = create_db_engine(url, echo=echo)
    metadata.create_all(engine)
    return engine
