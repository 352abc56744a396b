from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from compliance_watch.alerts.models import NotificationRecord
from compliance_watch.classifier.models import ChangeAnalysis
from compliance_watch.common.enums import FailureKind, SessionTrigger
from compliance_watch.sessions.models import CrawlSession


@dataclass(frozen=True)
class CheckOutcome:
    session: CrawlSession
    admitted: bool
    changed: bool = False
    first_seen: bool = False
    analysis: Optional[ChangeAnalysis] = None
    classification_skipped: bool = False
    failure_kind: Optional[FailureKind] = None
    notifications: List[NotificationRecord] = field(default_factory=list)


@dataclass(frozen=True)
class CheckRequest:
    request_id: str
    target_id: str
    requested_at: datetime
    trigger: SessionTrigger = SessionTrigger.manual


@dataclass
class TickReport:
    started_at: datetime
    selected: List[str] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)
    in_flight: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)
    finished_at: Optional[datetime] = None
