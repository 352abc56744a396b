from __future__ import annotations

from typing import List, Mapping, Optional

from compliance_watch.alerts.dispatchers import (
    DispatchResult,
    NotificationChannelAdapter,
    NotificationDispatchError,
)
from compliance_watch.alerts.models import ChangeNotification, DispatchStatus, NotificationRecord
from compliance_watch.alerts.repository import NotificationRepository
from compliance_watch.audit.logger import AuditLogger
from compliance_watch.classifier.models import ChangeAnalysis
from compliance_watch.common.clock import Clock
from compliance_watch.common.enums import NotificationChannel, NotificationPreference
from compliance_watch.diff.models import DiffPayload
from compliance_watch.targets.models import MonitoredTarget


PREFERENCE_CHANNELS = {
    NotificationPreference.none: (),
    NotificationPreference.email: (NotificationChannel.email,),
    NotificationPreference.webhook: (NotificationChannel.webhook,),
    NotificationPreference.both: (NotificationChannel.email, NotificationChannel.webhook),
}


class NotificationService:
    def __init__(
        self,
        repository: NotificationRepository,
        audit_logger: AuditLogger,
        *,
        dispatchers: Optional[Mapping[NotificationChannel, NotificationChannelAdapter]] = None,
        notify_only_if_meaningful: bool = True,
        clock: Optional[Clock] = None,
    ) -> None:
        self._repository = repository
        self._audit_logger = audit_logger
        self._dispatchers = dispatchers or {}
        self._notify_only_if_meaningful = notify_only_if_meaningful
        self._clock = clock or Clock()

    def channels_for(self, target: MonitoredTarget) -> List[NotificationChannel]:
        channels = list(PREFERENCE_CHANNELS[target.notification_preference])
        if NotificationChannel.webhook in channels and not target.webhook_url:
            channels.remove(NotificationChannel.webhook)
        return channels

    def notify(
        self,
        target: MonitoredTarget,
        analysis: ChangeAnalysis,
        diff: DiffPayload,
    ) -> List[NotificationRecord]:
        if self._notify_only_if_meaningful and not analysis.is_meaningful:
            return []
        notification = ChangeNotification(
            target_id=target.target_id,
            target_name=target.name,
            target_url=target.url,
            analysis_id=analysis.analysis_id,
            session_id=analysis.session_id,
            score=analysis.score,
            is_meaningful=analysis.is_meaningful,
            reasoning=analysis.reasoning,
            diff_text=diff.text,
            webhook_url=target.webhook_url,
        )
        records: List[NotificationRecord] = []
        for channel in self.channels_for(target):
            result = self._send(channel, notification)
            record = NotificationRecord(
                notification_id=self._repository.new_id(),
                target_id=target.target_id,
                analysis_id=analysis.analysis_id,
                channel=channel,
                status=DispatchStatus.succeeded if result.success else DispatchStatus.failed,
                error=None if result.success else result.error,
                created_at=self._clock.now(),
            )
            self._repository.add(record)
            if not result.success:
                self._audit_logger.log(
                    outcome="notification_failed",
                    target_id=target.target_id,
                    session_id=analysis.session_id,
                    params={"channel": channel.value, "error": result.error},
                )
            records.append(record)
        return records

    def _send(self, channel: NotificationChannel, notification: ChangeNotification) -> DispatchResult:
        dispatcher = self._dispatchers.get(channel)
        if dispatcher is None:
            return DispatchResult(success=False, error="dispatcher_missing")
        try:
            return dispatcher.send(notification)
        except NotificationDispatchError as exc:
            return DispatchResult(success=False, error=str(exc))
        except Exception as exc:
            return DispatchResult(success=False, error=f"{exc.__class__.__name__}: {exc}")
