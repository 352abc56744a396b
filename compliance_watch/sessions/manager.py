from __future__ import annotations

from typing import Optional, Tuple

from compliance_watch.audit.logger import AuditLogger
from compliance_watch.common.clock import Clock
from compliance_watch.common.enums import FailureKind, SessionStatus, SessionTrigger
from compliance_watch.sessions.errors import IllegalTransitionError
from compliance_watch.sessions.models import CrawlSession
from compliance_watch.sessions.repository import SessionRepository
from compliance_watch.targets.models import MonitoredTarget
from compliance_watch.targets.repository import TargetRepository


class CrawlSessionManager:
    def __init__(
        self,
        *,
        repository: SessionRepository,
        targets: TargetRepository,
        audit_logger: AuditLogger,
        clock: Optional[Clock] = None,
    ) -> None:
        self._repository = repository
        self._targets = targets
        self._audit_logger = audit_logger
        self._clock = clock or Clock()

    def start(
        self,
        target: MonitoredTarget,
        trigger: SessionTrigger = SessionTrigger.scheduled,
    ) -> Tuple[CrawlSession, bool]:
        now = self._clock.now()
        session, admitted = self._repository.create_if_absent(
            target.target_id,
            lambda session_id: CrawlSession(
                session_id=session_id,
                target_id=target.target_id,
                status=SessionStatus.pending,
                trigger=trigger,
                created_at=now,
            ),
            now,
        )
        if not admitted:
            self._audit_logger.log(
                outcome="session_rejected",
                target_id=target.target_id,
                session_id=session.session_id,
                params={"reason": "open_session_exists", "trigger": trigger.value},
            )
            return session, False

        def _run(candidate: CrawlSession) -> None:
            candidate.status = SessionStatus.running
            candidate.started_at = now

        running = self._apply(session, SessionStatus.running, _run)
        self._audit_logger.log(
            outcome="session_started",
            target_id=target.target_id,
            session_id=running.session_id,
            params={"trigger": trigger.value, "url": target.url},
        )
        return running, True

    def complete(self, session: CrawlSession, items_examined: int) -> CrawlSession:
        if items_examined < 0:
            raise ValueError("items_examined must not be negative")
        now = self._clock.now()

        def _complete(candidate: CrawlSession) -> None:
            candidate.status = SessionStatus.completed
            candidate.completed_at = now
            candidate.items_examined = items_examined

        completed = self._apply(session, SessionStatus.completed, _complete)
        self._targets.touch(completed.target_id, now)
        self._audit_logger.log(
            outcome="session_completed",
            target_id=completed.target_id,
            session_id=completed.session_id,
            params={"items_examined": items_examined},
        )
        return completed

    def fail(
        self,
        session: CrawlSession,
        error: str,
        kind: FailureKind = FailureKind.internal,
        *,
        items_examined: Optional[int] = None,
    ) -> CrawlSession:
        now = self._clock.now()

        def _fail(candidate: CrawlSession) -> None:
            candidate.status = SessionStatus.failed
            candidate.completed_at = now
            candidate.error = error or kind.value
            candidate.error_kind = kind
            if items_examined is not None:
                candidate.items_examined = items_examined

        failed = self._apply(session, SessionStatus.failed, _fail)
        self._targets.touch(failed.target_id, now)
        self._audit_logger.log(
            outcome="session_failed",
            target_id=failed.target_id,
            session_id=failed.session_id,
            params={"error": failed.error},
            error_kind=kind.value,
        )
        return failed

    def _apply(self, session: CrawlSession, to_status: SessionStatus, mutate) -> CrawlSession:
        allowed_from = SessionStatus.pending if to_status == SessionStatus.running else SessionStatus.running
        updated, current = self._repository.transition(
            session.session_id,
            allowed_from,
            mutate,
            self._clock.now(),
        )
        if updated is None:
            self._audit_logger.log(
                outcome="invariant_violation",
                target_id=current.target_id,
                session_id=current.session_id,
                params={"from": current.status.value, "to": to_status.value},
                error_kind="IllegalTransitionError",
            )
            raise IllegalTransitionError(current.session_id, current.status, to_status)
        return updated

    def get(self, session_id: str) -> Optional[CrawlSession]:
        return self._repository.get(session_id)
