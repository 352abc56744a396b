from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from compliance_watch.common.enums import TERMINAL_STATUSES, FailureKind, SessionStatus, SessionTrigger


@dataclass
class CrawlSession:
    session_id: str
    target_id: str
    status: SessionStatus = SessionStatus.pending
    trigger: SessionTrigger = SessionTrigger.scheduled
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    error_kind: Optional[FailureKind] = None
    items_examined: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class SessionTransition:
    session_id: str
    target_id: str
    from_status: Optional[SessionStatus]
    to_status: SessionStatus
    changed_at: datetime
