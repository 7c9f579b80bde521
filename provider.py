"""Address-based access to the phone location table.

``PhoneLocationProvider`` is what callers talk to: it resolves the address,
checks the request, runs it against the record store and turns faults into
plain return values. Caller misuse (a where clause on a number-keyed update,
an update against an unknown address) raises UnsupportedOperationError and is
left for the caller to fix.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from db import get_engine
from errors import QueryError
from models import COLUMNS, DEFAULT_SORT_ORDER, ID
from notifier import BackupAgent, ChangeNotifier, Observer, ObserverRegistry
from router import AddressRouter, build_routes, item_address
from schema import DATABASE_VERSION, open_database
from store import RecordStore

logger = logging.getLogger(__name__)

ITEM_TYPE = "vnd/phonelocation-entry"


class PhoneLocationProvider:
    def __init__(
        self,
        engine=None,
        backup: Optional[BackupAgent] = None,
        registry: Optional[ObserverRegistry] = None,
        routes=None,
        version: int = DATABASE_VERSION,
    ):
        self.engine = engine if engine is not None else get_engine()
        self.router = AddressRouter(routes if routes is not None else build_routes())
        self.notifier = ChangeNotifier(registry=registry, backup=backup)
        self.version = version
        self._store: Optional[RecordStore] = None
        self._open_lock = threading.Lock()

    @property
    def store(self) -> RecordStore:
        """The record store, opening (and migrating) the database on first use."""
        if self._store is None:
            with self._open_lock:
                if self._store is None:
                    open_database(self.engine, self.version)
                    self._store = RecordStore(self.engine, on_change=self.notifier.notify)
        return self._store

    @staticmethod
    def _invalid_fields(values: Dict) -> List[str]:
        return [name for name in values if name not in COLUMNS]

    def query(
        self,
        address: str,
        projection: Optional[List[str]] = None,
        where: Optional[str] = None,
        where_args: Optional[Dict] = None,
        sort_order: Optional[str] = None,
    ) -> Optional[List[Dict]]:
        """Return matching rows as dicts, or None when the read failed."""
        resolution = self.router.resolve(address)
        if not resolution.matched:
            logger.error("query: invalid request: %s", address)
            return None

        if not sort_order:
            sort_order = DEFAULT_SORT_ORDER

        try:
            return self.store.query(resolution, projection, where, where_args, sort_order)
        except QueryError as e:
            logger.error("returning no rows, query: %s: %s", address, e)
        except (SQLAlchemyError, OverflowError):
            logger.exception("returning no rows, query: %s", address)
        return None

    def insert(self, address: str, values: Optional[Dict]) -> Optional[str]:
        """Insert a row; returns the new item's address or None when nothing was inserted."""
        if not values:
            logger.error("Invalid insert values %s", values)
            return None
        invalid = self._invalid_fields(values)
        if invalid:
            logger.error("Invalid insert fields %s", invalid)
            return None

        resolution = self.router.resolve(address)
        try:
            row_id = self.store.insert(resolution, dict(values))
        except (SQLAlchemyError, OverflowError):
            logger.exception("insert failed: %s", address)
            return None
        if row_id is None:
            return None
        return item_address(row_id)

    def update(
        self,
        address: str,
        values: Optional[Dict],
        where: Optional[str] = None,
        where_args: Optional[Dict] = None,
    ) -> int:
        """Update rows at ``address``; on a ``bynumber`` address, insert when absent.

        Returns the number of rows changed.
        """
        if not values:
            logger.error("Invalid update values %s", values)
            return 0
        invalid = self._invalid_fields(values)
        if ID in values:
            invalid.append(ID)
        if invalid:
            logger.error("Invalid update fields %s", invalid)
            return 0

        resolution = self.router.resolve(address)
        try:
            return self.store.update(resolution, dict(values), where, where_args)
        except (SQLAlchemyError, OverflowError):
            logger.exception("update failed: %s", address)
            return 0

    def delete(self, address: str, where: Optional[str] = None, where_args: Optional[Dict] = None) -> int:
        # Never touches storage, not even to open it.
        return RecordStore.delete(self.router.resolve(address), where, where_args)

    def get_type(self, address: str) -> str:
        return ITEM_TYPE

    def register_observer(self, address: str, callback: Observer, notify_for_descendants: bool = False) -> None:
        self.notifier.registry.register(address, callback, notify_for_descendants)

    def unregister_observer(self, callback: Observer) -> None:
        self.notifier.registry.unregister(callback)

    def close(self) -> None:
        self.engine.dispose()
