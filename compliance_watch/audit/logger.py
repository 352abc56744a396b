from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from compliance_watch.audit.models import AuditLogRecord
from compliance_watch.audit.repository import AuditLogRepository
from compliance_watch.common.clock import Clock


class AuditLogger:
    def __init__(self, repository: AuditLogRepository, clock: Optional[Clock] = None) -> None:
        self._repository = repository
        self._clock = clock or Clock()

    def log(
        self,
        *,
        outcome: str,
        target_id: Optional[str] = None,
        session_id: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        error_kind: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> AuditLogRecord:
        record = AuditLogRecord(
            audit_id=self._repository.new_id(),
            target_id=target_id,
            session_id=session_id,
            outcome=outcome,
            params=params or {},
            error_kind=error_kind,
            created_at=created_at or self._clock.now(),
        )
        self._repository.add(record)
        return record
