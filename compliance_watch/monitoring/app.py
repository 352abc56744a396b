from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from compliance_watch.common.api import error_response, jsonable, ok_response
from compliance_watch.monitoring.factory import Monitor
from compliance_watch.monitoring.jobs import get_default_monitor
from compliance_watch.monitoring.models import CheckOutcome, TickReport
from compliance_watch.sessions.errors import SessionInvariantError
from compliance_watch.snapshot_store.models import SnapshotView
from compliance_watch.targets.errors import TargetNotFoundError, TargetValidationError
from compliance_watch.targets.models import MonitoredTarget, TargetCreateRequest, TargetPriorityUpdateRequest


def _not_found(message: str) -> JSONResponse:
    return JSONResponse(status_code=404, content=error_response("NOT_FOUND", message))


def _invalid(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content=error_response("VALIDATION_ERROR", message))


def _target_payload(monitor: Monitor, target: MonitoredTarget) -> Dict[str, Any]:
    payload = jsonable(target)
    next_check = monitor.scheduler.next_check_at(target)
    open_session = monitor.sessions.open_session_for(target.target_id)
    payload["effective_interval_minutes"] = (
        monitor.scheduler.effective_interval(target).total_seconds() / 60
    )
    payload["next_check_at"] = next_check.isoformat() if next_check else None
    payload["open_session_id"] = open_session.session_id if open_session else None
    return payload


def _outcome_payload(outcome: CheckOutcome) -> Dict[str, Any]:
    return {
        "admitted": outcome.admitted,
        "session": jsonable(outcome.session),
        "changed": outcome.changed,
        "first_seen": outcome.first_seen,
        "analysis": jsonable(outcome.analysis) if outcome.analysis else None,
        "classification_skipped": outcome.classification_skipped,
        "failure_kind": outcome.failure_kind.value if outcome.failure_kind else None,
    }


def _tick_payload(report: TickReport) -> Dict[str, Any]:
    return jsonable(report)


def create_app(monitor: Optional[Monitor] = None) -> FastAPI:
    app = FastAPI(title="Compliance Watch", docs_url=None, redoc_url=None)

    def _monitor() -> Monitor:
        return monitor or get_default_monitor()

    @app.get("/targets")
    def list_targets():
        current = _monitor()
        return ok_response(
            {"targets": [_target_payload(current, target) for target in current.target_service.list()]}
        )

    @app.post("/targets")
    def create_target(request: TargetCreateRequest):
        current = _monitor()
        try:
            target = current.target_service.create(request)
        except TargetValidationError as exc:
            return _invalid(str(exc))
        return ok_response(_target_payload(current, target))

    @app.get("/targets/{target_id}")
    def get_target(target_id: str):
        current = _monitor()
        try:
            target = current.target_service.get(target_id)
        except TargetNotFoundError:
            return _not_found("Target not found")
        return ok_response(_target_payload(current, target))

    @app.put("/targets/{target_id}/priority")
    def update_priority(target_id: str, request: TargetPriorityUpdateRequest):
        current = _monitor()
        if request.schema_version != "v1":
            return _invalid("schema_version must be v1")
        try:
            target = current.target_service.update_priority(
                target_id, request.priority, request.check_interval_minutes
            )
        except TargetNotFoundError:
            return _not_found("Target not found")
        except TargetValidationError as exc:
            return _invalid(str(exc))
        return ok_response(_target_payload(current, target))

    def _change_state(handler, target_id: str):
        current = _monitor()
        try:
            target = handler(current)(target_id)
        except TargetNotFoundError:
            return _not_found("Target not found")
        except TargetValidationError as exc:
            return _invalid(str(exc))
        return ok_response(_target_payload(current, target))

    @app.post("/targets/{target_id}/pause")
    def pause_target(target_id: str):
        return _change_state(lambda current: current.target_service.pause, target_id)

    @app.post("/targets/{target_id}/resume")
    def resume_target(target_id: str):
        return _change_state(lambda current: current.target_service.resume, target_id)

    @app.post("/targets/{target_id}/deactivate")
    def deactivate_target(target_id: str):
        return _change_state(lambda current: current.target_service.deactivate, target_id)

    @app.post("/targets/{target_id}/check")
    def request_check(target_id: str):
        current = _monitor()
        try:
            request_id = current.dispatcher.request_check(target_id)
        except TargetNotFoundError:
            return _not_found("Target not found")
        except TargetValidationError as exc:
            return _invalid(str(exc))
        return JSONResponse(
            status_code=202,
            content=ok_response({"request_id": request_id, "target_id": target_id}),
        )

    @app.post("/targets/{target_id}/check/run")
    def run_check(target_id: str):
        current = _monitor()
        try:
            outcome = current.dispatcher.check_now(target_id)
        except TargetNotFoundError:
            return _not_found("Target not found")
        except TargetValidationError as exc:
            return _invalid(str(exc))
        except SessionInvariantError as exc:
            return JSONResponse(
                status_code=500,
                content=error_response("INVARIANT_VIOLATION", str(exc)),
            )
        return ok_response(_outcome_payload(outcome))

    @app.get("/targets/{target_id}/snapshot")
    def get_snapshot(target_id: str):
        current = _monitor()
        snapshot = current.snapshots.current(target_id)
        if snapshot is None:
            return _not_found("Snapshot not found")
        view = SnapshotView(
            **asdict(snapshot),
            history_size=len(current.snapshots.history(target_id)),
        )
        return ok_response(jsonable(view))

    @app.get("/sessions")
    def list_sessions(target_id: Optional[str] = None):
        sessions = _monitor().sessions.list(target_id=target_id)
        return ok_response({"sessions": [jsonable(session) for session in sessions]})

    @app.get("/analyses")
    def list_analyses(target_id: Optional[str] = None):
        analyses = _monitor().analyses.list(target_id=target_id)
        return ok_response({"analyses": [jsonable(analysis) for analysis in analyses]})

    @app.post("/dispatch/tick")
    def run_tick():
        report = _monitor().dispatcher.tick()
        return ok_response(_tick_payload(report))

    @app.get("/audit")
    def list_audit(target_id: Optional[str] = None, outcome: Optional[str] = None):
        records = _monitor().audit_repo.list(target_id=target_id, outcome=outcome)
        return ok_response({"records": [jsonable(record) for record in records]})

    return app


app = create_app()
