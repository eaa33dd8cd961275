from copy import deepcopy
import threading
from typing import Optional

from produce_quote.models import Category, Snapshot


class SnapshotStore:
    """Last-known-good rows per category, keyed by category."""

    def load(self, category: Category) -> Optional[Snapshot]:
        raise NotImplementedError

    def save(self, category: Category, snapshot: Snapshot) -> None:
        raise NotImplementedError


def check_snapshot(snapshot: Snapshot) -> None:
    if not snapshot.rows:
        raise ValueError("refusing to save a snapshot without rows")
    if not snapshot.trading_date:
        raise ValueError("refusing to save a snapshot without a trading date")


class InMemorySnapshotStore(SnapshotStore):
    def __init__(self, initial: Optional[dict[Category, Snapshot]] = None) -> None:
        self._snapshots: dict[Category, Snapshot] = dict(initial or {})
        self._lock = threading.Lock()
        self.save_count = 0

    def load(self, category: Category) -> Optional[Snapshot]:
        with self._lock:
            snapshot = self._snapshots.get(category)
            return deepcopy(snapshot) if snapshot else None

    def save(self, category: Category, snapshot: Snapshot) -> None:
        check_snapshot(snapshot)
        with self._lock:
            self._snapshots[category] = deepcopy(snapshot)
            self.save_count += 1
