from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional

from sqlalchemy import insert, select, text, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from errors import QueryError, UnsupportedOperationError
from models import COLUMNS, ID, NUMBER, UPDATE_TIME, location_table
from router import Pattern, Resolution
from utils import now_millis

logger = logging.getLogger(__name__)


class RecordStore:
    """Reads and writes rows of the location table.

    Every write runs in its own transaction while holding a process-wide writer
    lock, and ``on_change`` is called after the commit of each write that changed
    something. It receives the changed address, or None for the whole collection.
    """

    def __init__(self, engine, on_change: Optional[Callable[[Optional[str]], None]] = None):
        self.engine = engine
        self.on_change = on_change or (lambda address: None)
        self._write_lock = threading.RLock()

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _params(values: Dict) -> Dict:
        params = {COLUMNS[name].key: value for name, value in values.items()}
        params.setdefault(COLUMNS[UPDATE_TIME].key, now_millis())
        return params

    @staticmethod
    def _filters(resolution: Resolution, where: Optional[str], where_args: Optional[Dict]) -> List:
        clauses = []
        if resolution.predicate is not None:
            clauses.append(COLUMNS[resolution.predicate.column] == resolution.predicate.value)
        if where:
            # parenthesized so an OR in the caller's clause can't escape the AND
            clauses.append(text(f"({where})").bindparams(**(where_args or {})))
        return clauses

    # -- reads --------------------------------------------------------------

    def query(
        self,
        resolution: Resolution,
        projection: Optional[List[str]] = None,
        where: Optional[str] = None,
        where_args: Optional[Dict] = None,
        sort_order: Optional[str] = None,
    ) -> List[Dict]:
        if not resolution.matched:
            raise QueryError(f"invalid request: {resolution.address}")

        names = list(projection) if projection else list(COLUMNS)
        unknown = [n for n in names if n not in COLUMNS]
        if unknown:
            raise QueryError(f"unknown columns {unknown} for {resolution.address}")

        stmt = select(*(COLUMNS[n].label(n) for n in names))
        for clause in self._filters(resolution, where, where_args):
            stmt = stmt.where(clause)
        if sort_order:
            stmt = stmt.order_by(text(sort_order))

        with self.engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [dict(r) for r in rows]

    # -- writes -------------------------------------------------------------

    def insert(self, resolution: Resolution, values: Dict) -> Optional[int]:
        """Insert a row unless one with the same number exists.

        Returns the new row id, or None when the address is not the collection or
        the number was already present.
        """
        if resolution.pattern is not Pattern.ALL:
            logger.error("insert: invalid request: %s", resolution.address)
            return None

        stmt = (
            sqlite_insert(location_table)
            .values(self._params(values))
            .on_conflict_do_nothing()
            .returning(COLUMNS[ID])
        )
        with self._write_lock:
            with self.engine.begin() as conn:
                row_id = conn.execute(stmt).scalar_one_or_none()

        if row_id is None:
            logger.debug("insert ignored, number already present: %s", values.get(NUMBER))
            return None

        logger.debug("inserted %s rowID = %s", values, row_id)
        self.on_change(resolution.address)
        return row_id

    def upsert_by_number(self, number: str, values: Dict) -> int:
        """Update the row keyed by ``number``, inserting it when absent.

        Both steps share one transaction. The inserted row takes ``number`` from
        the argument unless ``values`` carries its own.
        """
        params = self._params(values)
        with self._write_lock:
            with self.engine.begin() as conn:
                count = conn.execute(
                    update(location_table).where(COLUMNS[NUMBER] == number).values(params)
                ).rowcount
                if count == 0:
                    row = dict(params)
                    row.setdefault(COLUMNS[NUMBER].key, number)
                    if conn.execute(insert(location_table).values(row)).rowcount > 0:
                        count = 1
        return count

    def update_where(
        self,
        resolution: Resolution,
        values: Dict,
        where: Optional[str] = None,
        where_args: Optional[Dict] = None,
    ) -> int:
        stmt = update(location_table).values(self._params(values))
        for clause in self._filters(resolution, where, where_args):
            stmt = stmt.where(clause)
        with self._write_lock:
            with self.engine.begin() as conn:
                return conn.execute(stmt).rowcount

    def update(
        self,
        resolution: Resolution,
        values: Dict,
        where: Optional[str] = None,
        where_args: Optional[Dict] = None,
    ) -> int:
        pattern = resolution.pattern
        logger.debug("Update address=%s, match=%s", resolution.address, pattern.name)

        if pattern is Pattern.NUMBER:
            if where is not None or where_args is not None:
                raise UnsupportedOperationError(
                    f"Cannot update address {resolution.address} with a where clause"
                )
            count = self.upsert_by_number(resolution.value, values)
        elif pattern is Pattern.NO_MATCH:
            raise UnsupportedOperationError(f"Cannot update that address: {resolution.address}")
        else:
            count = self.update_where(resolution, values, where, where_args)

        logger.debug("Update result count %d", count)
        if count > 0:
            self.on_change(None if pattern is Pattern.ALL else resolution.address)
        return count

    @staticmethod
    def delete(resolution: Resolution, where: Optional[str] = None, where_args: Optional[Dict] = None) -> int:
        # Rows are never removed through this interface.
        logger.debug("delete ignored for %s", resolution.address)
        return 0
