from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from compliance_watch.common.enums import NotificationChannel


class DispatchStatus(str, Enum):
    succeeded = "succeeded"
    failed = "failed"


@dataclass(frozen=True)
class ChangeNotification:
    target_id: str
    target_name: str
    target_url: str
    analysis_id: str
    session_id: str
    score: float
    is_meaningful: bool
    reasoning: str
    diff_text: str
    webhook_url: Optional[str] = None


@dataclass(frozen=True)
class NotificationRecord:
    notification_id: str
    target_id: str
    analysis_id: str
    channel: NotificationChannel
    status: DispatchStatus
    error: Optional[str]
    created_at: datetime
