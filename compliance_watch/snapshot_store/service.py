from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from compliance_watch.snapshot_store.models import SnapshotRecord
from compliance_watch.snapshot_store.repository import SnapshotRepository


class SnapshotStoreService:
    def __init__(self, repository: SnapshotRepository, *, history_limit: int = 20) -> None:
        if history_limit < 0:
            raise ValueError("history_limit must not be negative")
        self._repository = repository
        self._history_limit = history_limit

    def current(self, target_id: str) -> Optional[SnapshotRecord]:
        return self._repository.current(target_id)

    def history(self, target_id: str) -> List[SnapshotRecord]:
        return self._repository.history(target_id)

    def replace(
        self,
        *,
        target_id: str,
        content: str,
        content_hash: str,
        captured_at: datetime,
    ) -> SnapshotRecord:
        record = SnapshotRecord(
            snapshot_id=self._repository.new_id(),
            target_id=target_id,
            content_hash=content_hash,
            content=content,
            captured_at=captured_at,
        )
        self._repository.replace(record)
        self.prune(target_id, self._history_limit)
        return record

    def prune(self, target_id: str, keep: int) -> int:
        return self._repository.prune(target_id, keep)
