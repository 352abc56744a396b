from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_for
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from compliance_watch.audit.logger import AuditLogger
from compliance_watch.common.clock import Clock
from compliance_watch.common.enums import SessionStatus, SessionTrigger
from compliance_watch.monitoring.models import CheckOutcome, TickReport
from compliance_watch.monitoring.pipeline import CheckPipeline
from compliance_watch.monitoring.queue import CheckQueueBackend
from compliance_watch.scheduling.scheduler import PriorityScheduler
from compliance_watch.sessions.errors import SessionInvariantError
from compliance_watch.targets.errors import TargetNotFoundError, TargetValidationError
from compliance_watch.targets.models import MonitoredTarget
from compliance_watch.targets.repository import TargetRepository


class Dispatcher:
    def __init__(
        self,
        *,
        scheduler: PriorityScheduler,
        pipeline: CheckPipeline,
        targets: TargetRepository,
        check_queue: CheckQueueBackend,
        audit_logger: AuditLogger,
        max_workers: int = 4,
        max_tick_seconds: float = 240.0,
        interval_minutes: float = 10.0,
        clock: Optional[Clock] = None,
    ) -> None:
        self._scheduler = scheduler
        self._pipeline = pipeline
        self._targets = targets
        self._check_queue = check_queue
        self._audit_logger = audit_logger
        self._max_tick_seconds = max_tick_seconds
        self._interval_minutes = interval_minutes
        self._clock = clock or Clock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="check")
        self._submitted: Set[str] = set()
        self._lock = threading.Lock()

    def _admissible(self, target_id: str) -> MonitoredTarget:
        target = self._targets.get(target_id)
        if target is None:
            raise TargetNotFoundError(target_id)
        if not target.active:
            raise TargetValidationError(f"target {target_id} is deactivated")
        return target

    def check_now(self, target_id: str) -> CheckOutcome:
        # paused targets are allowed
        target = self._admissible(target_id)
        return self._pipeline.run(target, SessionTrigger.manual)

    def request_check(self, target_id: str) -> str:
        self._admissible(target_id)
        request_id = self._check_queue.enqueue(target_id)
        self._audit_logger.log(
            outcome="check_requested",
            target_id=target_id,
            params={"request_id": request_id},
        )
        return request_id

    def _manual_work(self) -> List[Tuple[MonitoredTarget, SessionTrigger]]:
        work: List[Tuple[MonitoredTarget, SessionTrigger]] = []
        for request in self._check_queue.drain():
            try:
                target = self._admissible(request.target_id)
            except (TargetNotFoundError, TargetValidationError) as exc:
                self._audit_logger.log(
                    outcome="check_request_dropped",
                    target_id=request.target_id,
                    params={"request_id": request.request_id, "reason": str(exc)},
                    error_kind=exc.__class__.__name__,
                )
                continue
            work.append((target, SessionTrigger.manual))
        return work

    def _release(self, target_id: str) -> None:
        with self._lock:
            self._submitted.discard(target_id)

    def _submit(self, target: MonitoredTarget, trigger: SessionTrigger) -> Optional[Future]:
        with self._lock:
            if target.target_id in self._submitted:
                return None
            self._submitted.add(target.target_id)
        future = self._executor.submit(self._pipeline.run, target, trigger)
        future.add_done_callback(lambda _: self._release(target.target_id))
        return future

    def tick(self, now: Optional[datetime] = None) -> TickReport:
        now = now or self._clock.now()
        report = TickReport(started_at=now)

        work = self._manual_work()
        manual_ids = {target.target_id for target, _ in work}
        for target in self._scheduler.select_due(now):
            if target.target_id not in manual_ids:
                work.append((target, SessionTrigger.scheduled))

        futures: Dict[Future, str] = {}
        for target, trigger in work:
            future = self._submit(target, trigger)
            if future is None:
                report.rejected.append(target.target_id)
                continue
            futures[future] = target.target_id
            report.selected.append(target.target_id)

        done, not_done = wait_for(list(futures), timeout=self._max_tick_seconds)
        for future in done:
            target_id = futures[future]
            try:
                outcome = future.result()
            except SessionInvariantError as exc:
                report.errors[target_id] = str(exc)
                self._audit_logger.log(
                    outcome="dispatch_invariant_violation",
                    target_id=target_id,
                    params={"reason": str(exc)},
                    error_kind=exc.__class__.__name__,
                )
                continue
            except Exception as exc:
                report.errors[target_id] = f"{exc.__class__.__name__}: {exc}"
                self._audit_logger.log(
                    outcome="dispatch_error",
                    target_id=target_id,
                    params={"reason": str(exc)},
                    error_kind=exc.__class__.__name__,
                )
                continue
            if not outcome.admitted:
                report.rejected.append(target_id)
            elif outcome.session.status == SessionStatus.completed:
                report.completed.append(target_id)
            else:
                report.failed.append(target_id)
        report.in_flight = sorted(futures[future] for future in not_done)
        report.finished_at = self._clock.now()

        self._audit_logger.log(
            outcome="tick_completed",
            params={
                "selected": len(report.selected),
                "completed": len(report.completed),
                "failed": len(report.failed),
                "rejected": len(report.rejected),
                "in_flight": len(report.in_flight),
            },
        )
        return report

    def run_forever(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            try:
                self.tick()
            except Exception as exc:
                self._audit_logger.log(
                    outcome="tick_failed",
                    params={"reason": str(exc)},
                    error_kind=exc.__class__.__name__,
                )
            stop_event.wait(self._interval_minutes * 60)

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
