from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from compliance_watch.audit.logger import AuditLogger
from compliance_watch.common.clock import Clock
from compliance_watch.common.enums import FailureKind, SessionStatus
from compliance_watch.scheduling.policy import PRIORITY_RANK, SchedulePolicy
from compliance_watch.sessions.repository import SessionRepository
from compliance_watch.targets.models import MonitoredTarget
from compliance_watch.targets.repository import TargetRepository


# Sessions inspected when counting consecutive rate-limit failures.
STREAK_LOOKBACK = 32


class PriorityScheduler:
    def __init__(
        self,
        *,
        targets: TargetRepository,
        sessions: SessionRepository,
        policy: SchedulePolicy,
        audit_logger: AuditLogger,
        max_dispatch_per_tick: Optional[int] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._targets = targets
        self._sessions = sessions
        self._policy = policy
        self._audit_logger = audit_logger
        self._max_dispatch_per_tick = max_dispatch_per_tick
        self._clock = clock or Clock()

    @property
    def policy(self) -> SchedulePolicy:
        return self._policy

    def rate_limit_streak(self, target_id: str) -> int:
        streak = 0
        for session in self._sessions.recent_for_target(target_id, STREAK_LOOKBACK):
            if not session.is_terminal:
                continue
            if session.status == SessionStatus.completed:
                break
            # Other failure kinds neither extend nor reset the streak.
            if session.error_kind == FailureKind.rateLimited:
                streak += 1
        return streak

    def base_interval(self, target: MonitoredTarget) -> float:
        if target.check_interval_minutes is not None:
            return target.check_interval_minutes
        return self._policy.base_interval(target.priority)

    def effective_interval(self, target: MonitoredTarget) -> timedelta:
        multiplier = self._policy.backoff_multiplier(self.rate_limit_streak(target.target_id))
        return timedelta(minutes=self.base_interval(target) * multiplier)

    def next_check_at(self, target: MonitoredTarget) -> Optional[datetime]:
        if target.last_checked is None:
            return None
        return target.last_checked + self.effective_interval(target)

    def is_due(self, target: MonitoredTarget, now: datetime) -> bool:
        if not target.active or target.paused:
            return False
        next_at = self.next_check_at(target)
        return next_at is None or next_at <= now

    def select_due(self, now: Optional[datetime] = None) -> List[MonitoredTarget]:
        now = now or self._clock.now()
        try:
            candidates = self._targets.list_schedulable()
        except Exception as exc:
            self._audit_logger.log(
                outcome="selection_degraded",
                params={"reason": str(exc)},
                error_kind=exc.__class__.__name__,
            )
            return []

        due: List[MonitoredTarget] = []
        seen = set()
        for target in candidates:
            if target.target_id in seen:
                continue
            seen.add(target.target_id)
            if not self.is_due(target, now):
                continue
            if self._sessions.open_session_for(target.target_id) is not None:
                continue
            due.append(target)

        oldest = datetime.min.replace(tzinfo=now.tzinfo)
        due.sort(
            key=lambda target: (
                PRIORITY_RANK[target.priority],
                target.last_checked or oldest,
                target.target_id,
            )
        )
        if self._max_dispatch_per_tick is not None:
            due = due[: self._max_dispatch_per_tick]
        return due
