from __future__ import annotations

import threading
from typing import Dict, List, Optional
from uuid import uuid4

from compliance_watch.snapshot_store.models import SnapshotRecord


class SnapshotRepository:
    def __init__(self) -> None:
        self._current: Dict[str, SnapshotRecord] = {}
        self._history: Dict[str, List[SnapshotRecord]] = {}
        self._lock = threading.Lock()

    def current(self, target_id: str) -> Optional[SnapshotRecord]:
        with self._lock:
            return self._current.get(target_id)

    def history(self, target_id: str) -> List[SnapshotRecord]:
        with self._lock:
            return list(self._history.get(target_id, []))

    def replace(self, record: SnapshotRecord) -> Optional[SnapshotRecord]:
        with self._lock:
            previous = self._current.get(record.target_id)
            if previous is not None:
                self._history.setdefault(record.target_id, []).append(previous)
            self._current[record.target_id] = record
            return previous

    def prune(self, target_id: str, keep: int) -> int:
        with self._lock:
            history = self._history.get(target_id, [])
            overflow = max(0, len(history) - max(keep, 0))
            if overflow:
                self._history[target_id] = history[overflow:]
            return overflow

    def new_id(self) -> str:
        return str(uuid4())
