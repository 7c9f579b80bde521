"""Change notification for the location store.

``ChangeNotifier.notify`` is the post-commit hook the record store calls once
per successful mutation: observers scoped to the changed address hear about it,
then the backup collaborator is told that the data changed.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Protocol

from router import CONTENT_ADDRESS, split_address

logger = logging.getLogger(__name__)

Observer = Callable[[str], None]


class BackupAgent(Protocol):
    def data_changed(self) -> None: ...


class BackupManager:
    """Tracks that the store needs a backup pass.

    The backup subsystem polls ``pending`` and calls ``clear`` after it copied
    the data; every mutation sets the flag again.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.pending = False
        self.changes = 0

    def data_changed(self) -> None:
        with self._lock:
            self.pending = True
            self.changes += 1
        logger.debug("Backup requested (%d changes)", self.changes)

    def clear(self) -> None:
        with self._lock:
            self.pending = False


class ObserverRegistry:
    def __init__(self):
        self._lock = threading.Lock()
        self._observers: List[tuple] = []

    def register(self, address: str, callback: Observer, notify_for_descendants: bool = False) -> None:
        with self._lock:
            self._observers.append((split_address(address), callback, notify_for_descendants))

    def unregister(self, callback: Observer) -> None:
        with self._lock:
            self._observers = [o for o in self._observers if o[1] is not callback]

    def observers_for(self, address: str) -> List[Observer]:
        changed = split_address(address)
        found = []
        with self._lock:
            observers = list(self._observers)
        for segments, callback, descendants in observers:
            if segments[: len(changed)] == changed:
                # same address, or an address underneath the changed one
                found.append(callback)
            elif descendants and changed[: len(segments)] == segments:
                found.append(callback)
        return found

    def notify_change(self, address: str) -> int:
        observers = self.observers_for(address)
        for callback in observers:
            try:
                callback(address)
            except Exception:
                logger.exception("Observer %r failed for %s", callback, address)
        return len(observers)


class ChangeNotifier:
    def __init__(
        self,
        registry: Optional[ObserverRegistry] = None,
        backup: Optional[BackupAgent] = None,
        collection_address: str = CONTENT_ADDRESS,
    ):
        self.registry = registry if registry is not None else ObserverRegistry()
        self.backup = backup if backup is not None else BackupManager()
        self.collection_address = collection_address

    def notify(self, address: Optional[str] = None) -> None:
        target = address or self.collection_address
        count = self.registry.notify_change(target)
        logger.debug("Notified %d observer(s) of change to %s", count, target)
        self.backup.data_changed()

    __call__ = notify
