"""Schema lifecycle for the location database.

The stored version lives in sqlite's ``PRAGMA user_version``. Opening at a newer
target runs each missing migration step in order; every step is safe to repeat
on a database that already has its effect, and no step touches row data.
"""
from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateIndex, CreateTable

from db import get_dialect_name
from errors import SchemaError
from models import location_table, number_index

logger = logging.getLogger(__name__)

DATABASE_VERSION = 2


def _create_location_table(conn):
    conn.execute(CreateTable(location_table, if_not_exists=True))


def _create_number_index(conn):
    conn.execute(CreateIndex(number_index, if_not_exists=True))


# (version, step) in ascending order
MIGRATIONS = (
    (1, _create_location_table),
    (2, _create_number_index),
)


def get_stored_version(conn) -> int:
    return int(conn.execute(text("PRAGMA user_version")).scalar() or 0)


def open_database(engine, version: int = DATABASE_VERSION):
    """Bring the database behind ``engine`` to ``version`` and return the engine.

    Raises SchemaError when the engine is not sqlite, when the stored version is
    newer than ``version``, or when any migration step fails.
    """
    if get_dialect_name(engine) != "sqlite":
        raise SchemaError(f"unsupported database dialect: {get_dialect_name(engine)}")
    if version < 1 or version > DATABASE_VERSION:
        raise SchemaError(f"unknown schema version {version}")

    try:
        with engine.begin() as conn:
            current = get_stored_version(conn)
            if current > version:
                raise SchemaError(
                    f"cannot downgrade database from version {current} to {version}"
                )
            if current == version:
                return engine

            for step_version, step in MIGRATIONS:
                if current < step_version <= version:
                    logger.info("Applying schema step %d (%s)", step_version, step.__name__)
                    step(conn)
            # PRAGMA does not accept bound parameters
            conn.execute(text(f"PRAGMA user_version = {int(version)}"))
            logger.info("Database schema at version %d (was %d)", version, current)
    except SQLAlchemyError as e:
        raise SchemaError(f"failed to open database at version {version}: {e}") from e
    return engine
