from __future__ import annotations

from typing import List, Optional
from urllib.parse import urlparse

from compliance_watch.common.clock import Clock
from compliance_watch.common.enums import NotificationPreference, PriorityTier
from compliance_watch.scheduling.policy import CRITICAL_MAX_INTERVAL_MINUTES
from compliance_watch.targets.errors import TargetValidationError
from compliance_watch.targets.models import MonitoredTarget, TargetCreateRequest
from compliance_watch.targets.repository import TargetRepository


def validate_target_url(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise TargetValidationError(f"url must be an absolute http(s) URL; received {url!r}")


def validate_priority_interval(priority: PriorityTier, interval_minutes: Optional[float]) -> None:
    if interval_minutes is None:
        return
    if interval_minutes <= 0:
        raise TargetValidationError("check_interval_minutes must be positive")
    if priority == PriorityTier.critical and interval_minutes > CRITICAL_MAX_INTERVAL_MINUTES:
        raise TargetValidationError("critical targets must be checked at least daily")


class TargetService:
    def __init__(self, repository: TargetRepository, *, clock: Optional[Clock] = None) -> None:
        self._repository = repository
        self._clock = clock or Clock()

    def create(self, request: TargetCreateRequest) -> MonitoredTarget:
        if request.schema_version != "v1":
            raise TargetValidationError("schema_version must be v1")
        name = request.name.strip()
        if not name:
            raise TargetValidationError("name is required")
        validate_target_url(request.url)
        validate_priority_interval(request.priority, request.check_interval_minutes)
        if request.notification_preference in {NotificationPreference.webhook, NotificationPreference.both}:
            if not request.webhook_url:
                raise TargetValidationError("webhook_url is required for webhook notifications")
            validate_target_url(request.webhook_url)

        target = MonitoredTarget(
            target_id=self._repository.new_id(),
            url=request.url,
            name=name,
            priority=request.priority,
            check_interval_minutes=request.check_interval_minutes,
            jurisdiction=request.jurisdiction,
            topic_key=request.topic_key,
            notification_preference=request.notification_preference,
            webhook_url=request.webhook_url,
            created_at=self._clock.now(),
        )
        self._repository.add(target)
        return target

    def get(self, target_id: str) -> MonitoredTarget:
        return self._repository.require(target_id)

    def list(self) -> List[MonitoredTarget]:
        return self._repository.list()

    def update_priority(
        self,
        target_id: str,
        priority: PriorityTier,
        check_interval_minutes: Optional[float] = None,
    ) -> MonitoredTarget:
        validate_priority_interval(priority, check_interval_minutes)

        def _apply(target: MonitoredTarget) -> None:
            target.priority = priority
            target.check_interval_minutes = check_interval_minutes

        return self._repository.update(target_id, _apply)

    def pause(self, target_id: str) -> MonitoredTarget:
        def _pause(target: MonitoredTarget) -> None:
            target.paused = True

        return self._repository.update(target_id, _pause)

    def resume(self, target_id: str) -> MonitoredTarget:
        def _resume(target: MonitoredTarget) -> None:
            if not target.active:
                raise TargetValidationError("deactivated targets cannot be resumed")
            target.paused = False

        return self._repository.update(target_id, _resume)

    def deactivate(self, target_id: str) -> MonitoredTarget:
        def _deactivate(target: MonitoredTarget) -> None:
            target.active = False

        return self._repository.update(target_id, _deactivate)
