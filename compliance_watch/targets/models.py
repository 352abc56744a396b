from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from compliance_watch.common.clock import utc_now
from compliance_watch.common.enums import NotificationPreference, PriorityTier


@dataclass
class MonitoredTarget:
    target_id: str
    url: str
    name: str
    priority: PriorityTier
    check_interval_minutes: Optional[float] = None
    active: bool = True
    paused: bool = False
    last_checked: Optional[datetime] = None
    jurisdiction: Optional[str] = None
    topic_key: Optional[str] = None
    notification_preference: NotificationPreference = NotificationPreference.none
    webhook_url: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)


class TargetCreateRequest(BaseModel):
    schema_version: str
    url: str
    name: str
    priority: PriorityTier = PriorityTier.medium
    check_interval_minutes: Optional[float] = Field(default=None, gt=0)
    jurisdiction: Optional[str] = None
    topic_key: Optional[str] = None
    notification_preference: NotificationPreference = NotificationPreference.none
    webhook_url: Optional[str] = None


class TargetPriorityUpdateRequest(BaseModel):
    schema_version: str
    priority: PriorityTier
    check_interval_minutes: Optional[float] = Field(default=None, gt=0)
