"""Last-known-good endpoint snapshots, keyed by service name."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from .models import Endpoint

logger = logging.getLogger(__name__)


class InstanceBackup:
    """Thread-safe store of the most recent successful lookup per service.

    Entries are never expired; the last write for a service wins. Snapshots
    are stored as tuples so a reader can never observe a partially written
    entry, and every read hands out a new list.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshots: dict[str, tuple[Endpoint, ...]] = {}

    def put(self, service_id: str, instances: Iterable[Endpoint]) -> None:
        snapshot = tuple(instances)
        with self._lock:
            self._snapshots[service_id] = snapshot
        logger.debug("Stored backup for %s (%d instances)", service_id, len(snapshot))

    def get(self, service_id: str) -> list[Endpoint] | None:
        """Return a copy of the stored snapshot, or None if the service was never stored."""
        with self._lock:
            snapshot = self._snapshots.get(service_id)
        return None if snapshot is None else list(snapshot)

    def __contains__(self, service_id: object) -> bool:
        with self._lock:
            return service_id in self._snapshots

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)

    def clear(self) -> None:
        with self._lock:
            self._snapshots.clear()
