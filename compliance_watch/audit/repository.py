from __future__ import annotations

import threading
from collections import deque
from typing import Deque, List, Optional
from uuid import uuid4

from compliance_watch.audit.models import AuditLogRecord


DEFAULT_MAX_RECORDS = 10000


class AuditLogRepository:
    def __init__(self, max_records: int = DEFAULT_MAX_RECORDS) -> None:
        if max_records < 1:
            raise ValueError("max_records must be at least 1")
        # oldest records are evicted first
        self._records: Deque[AuditLogRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    def add(self, record: AuditLogRecord) -> None:
        with self._lock:
            self._records.append(record)

    def list(self, *, target_id: Optional[str] = None, outcome: Optional[str] = None) -> List[AuditLogRecord]:
        with self._lock:
            records = list(self._records)
        if target_id is not None:
            records = [record for record in records if record.target_id == target_id]
        if outcome is not None:
            records = [record for record in records if record.outcome == outcome]
        return records

    def new_id(self) -> str:
        return str(uuid4())
