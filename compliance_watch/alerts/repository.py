from __future__ import annotations

import threading
from typing import List, Optional
from uuid import uuid4

from compliance_watch.alerts.models import NotificationRecord


class NotificationRepository:
    def __init__(self) -> None:
        self._records: List[NotificationRecord] = []
        self._lock = threading.Lock()

    def add(self, record: NotificationRecord) -> None:
        with self._lock:
            self._records.append(record)

    def list(self, *, target_id: Optional[str] = None) -> List[NotificationRecord]:
        with self._lock:
            records = list(self._records)
        if target_id is not None:
            records = [record for record in records if record.target_id == target_id]
        return records

    def new_id(self) -> str:
        return str(uuid4())
