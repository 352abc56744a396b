from __future__ import annotations

from typing import List, Optional

from compliance_watch.acquisition.errors import FetchError
from compliance_watch.acquisition.fetcher import ContentFetcher
from compliance_watch.acquisition.models import FetchRequest
from compliance_watch.alerts.models import NotificationRecord
from compliance_watch.alerts.service import NotificationService
from compliance_watch.audit.logger import AuditLogger
from compliance_watch.classifier.errors import ClassifierUnavailableError
from compliance_watch.classifier.models import ChangeAnalysis
from compliance_watch.classifier.service import ChangeClassifier
from compliance_watch.common.clock import Clock
from compliance_watch.common.enums import FailureKind, SessionStatus, SessionTrigger
from compliance_watch.diff.engine import DiffEngine
from compliance_watch.monitoring.models import CheckOutcome
from compliance_watch.sessions.errors import SessionInvariantError
from compliance_watch.sessions.manager import CrawlSessionManager
from compliance_watch.sessions.models import CrawlSession
from compliance_watch.targets.models import MonitoredTarget


# One configured URL per target.
ITEMS_PER_FETCH = 1


class CheckPipeline:
    def __init__(
        self,
        *,
        sessions: CrawlSessionManager,
        fetcher: ContentFetcher,
        diff_engine: DiffEngine,
        classifier: ChangeClassifier,
        notifications: NotificationService,
        audit_logger: AuditLogger,
        fetch_timeout_s: float = 60.0,
        formats: Optional[List[str]] = None,
        only_main_content: bool = False,
        clock: Optional[Clock] = None,
    ) -> None:
        self._sessions = sessions
        self._fetcher = fetcher
        self._diff_engine = diff_engine
        self._classifier = classifier
        self._notifications = notifications
        self._audit_logger = audit_logger
        self._fetch_timeout_s = fetch_timeout_s
        self._formats = formats or ["markdown"]
        self._only_main_content = only_main_content
        self._clock = clock or Clock()

    def fetch_request(self, target: MonitoredTarget) -> FetchRequest:
        return FetchRequest(
            url=target.url,
            formats=list(self._formats),
            only_main_content=self._only_main_content,
            timeout_s=self._fetch_timeout_s,
        )

    def run(self, target: MonitoredTarget, trigger: SessionTrigger = SessionTrigger.scheduled) -> CheckOutcome:
        session, admitted = self._sessions.start(target, trigger)
        if not admitted:
            return CheckOutcome(session=session, admitted=False)
        try:
            return self._execute(target, session)
        except SessionInvariantError as exc:
            self._resolve_failed(session, exc)
            raise

    def _execute(self, target: MonitoredTarget, session: CrawlSession) -> CheckOutcome:
        try:
            response = self._fetcher.fetch(self.fetch_request(target))
        except FetchError as exc:
            failed = self._sessions.fail(session, str(exc), exc.kind)
            return CheckOutcome(session=failed, admitted=True, failure_kind=exc.kind)
        except Exception as exc:
            failed = self._sessions.fail(
                session,
                f"{exc.__class__.__name__}: {exc}",
                FailureKind.internal,
            )
            return CheckOutcome(session=failed, admitted=True, failure_kind=FailureKind.internal)

        analysis: Optional[ChangeAnalysis] = None
        skipped = False
        notifications: List[NotificationRecord] = []
        try:
            result = self._diff_engine.compare_with_current(target.target_id, response.content)
            if result.needs_classification:
                try:
                    analysis = self._classifier.classify(target, result.diff, session_id=session.session_id)
                except ClassifierUnavailableError as exc:
                    skipped = True
                    self._audit_logger.log(
                        outcome="classification_skipped",
                        target_id=target.target_id,
                        session_id=session.session_id,
                        params={"reason": str(exc)},
                        error_kind=exc.kind.value,
                    )
            self._diff_engine.commit(target.target_id, result, self._clock.now())
            if analysis is not None:
                self._classifier.record(analysis)
                notifications = self._notifications.notify(target, analysis, result.diff)
        except SessionInvariantError:
            raise
        except Exception as exc:
            failed = self._sessions.fail(
                session,
                f"{exc.__class__.__name__}: {exc}",
                FailureKind.internal,
                items_examined=ITEMS_PER_FETCH,
            )
            return CheckOutcome(session=failed, admitted=True, failure_kind=FailureKind.internal)

        completed = self._sessions.complete(session, ITEMS_PER_FETCH)
        return CheckOutcome(
            session=completed,
            admitted=True,
            changed=result.changed,
            first_seen=result.first_seen,
            analysis=analysis,
            classification_skipped=skipped,
            notifications=notifications,
        )

    def _resolve_failed(self, session: CrawlSession, exc: SessionInvariantError) -> None:
        current = self._sessions.get(session.session_id)
        if current is None or current.status != SessionStatus.running:
            return
        self._sessions.fail(current, f"{exc.__class__.__name__}: {exc}", FailureKind.internal)
