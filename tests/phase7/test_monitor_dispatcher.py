import threading
import time

import pytest

from compliance_watch.common.enums import PriorityTier, SessionStatus, SessionTrigger
from compliance_watch.config import MonitorConfig
from compliance_watch.sessions.errors import IllegalTransitionError
from compliance_watch.targets.errors import TargetNotFoundError, TargetValidationError


PAGE = "# Workplace posters\nPoster A required\n"


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_tick_runs_due_targets(monitor, add_target, fetch_client, clock):
    first = add_target(name="Posters", url="https://labor.example.gov/posters", priority=PriorityTier.critical)
    second = add_target(name="Leave", url="https://labor.example.gov/leave", priority=PriorityTier.low)
    fetch_client.set_page(first.url, PAGE)
    fetch_client.set_page(second.url, PAGE)

    report = monitor.dispatcher.tick(clock.now())
    assert report.selected == [first.target_id, second.target_id]
    assert sorted(report.completed) == sorted([first.target_id, second.target_id])
    assert report.failed == []
    assert report.in_flight == []
    assert report.finished_at is not None
    assert monitor.audit_repo.list(outcome="tick_completed")[-1].params["completed"] == 2

    again = monitor.dispatcher.tick(clock.now())
    assert again.selected == []


def test_tick_reports_failed_fetches(monitor, add_target, clock):
    target = add_target()
    report = monitor.dispatcher.tick(clock.now())
    assert report.failed == [target.target_id]
    session = monitor.sessions.list(target_id=target.target_id)[0]
    assert session.status == SessionStatus.failed


@pytest.mark.parametrize("monitor_config", [MonitorConfig(max_tick_seconds=0.2)])
def test_slow_checks_stay_in_flight_across_ticks(monitor, add_target, fetch_client, clock, monkeypatch):
    target = add_target()
    release = threading.Event()
    original = fetch_client.fetch

    def slow_fetch(request):
        release.wait(5)
        return original(request)

    fetch_client.set_page(target.url, PAGE)
    monkeypatch.setattr(fetch_client, "fetch", slow_fetch)

    report = monitor.dispatcher.tick(clock.now())
    assert report.in_flight == [target.target_id]
    assert monitor.sessions.open_session_for(target.target_id).status == SessionStatus.running

    second = monitor.dispatcher.tick(clock.now())
    assert second.selected == []

    release.set()
    assert _wait_until(lambda: monitor.sessions.open_session_for(target.target_id) is None)
    assert monitor.sessions.list(target_id=target.target_id)[0].status == SessionStatus.completed


def test_check_now_runs_paused_targets(monitor, add_target, fetch_client):
    target = add_target()
    fetch_client.set_page(target.url, PAGE)
    monitor.target_service.pause(target.target_id)

    outcome = monitor.dispatcher.check_now(target.target_id)
    assert outcome.session.status == SessionStatus.completed
    assert outcome.session.trigger == SessionTrigger.manual


def test_check_now_rejects_unknown_and_deactivated(monitor, add_target):
    with pytest.raises(TargetNotFoundError):
        monitor.dispatcher.check_now("missing")
    target = add_target()
    monitor.target_service.deactivate(target.target_id)
    with pytest.raises(TargetValidationError):
        monitor.dispatcher.check_now(target.target_id)


def test_requested_check_runs_on_next_tick(monitor, add_target, fetch_client, clock):
    target = add_target()
    fetch_client.set_page(target.url, PAGE)
    monitor.target_service.pause(target.target_id)

    request_id = monitor.dispatcher.request_check(target.target_id)
    assert monitor.dispatcher.request_check(target.target_id) == request_id
    assert [item.target_id for item in monitor.check_queue.list()] == [target.target_id]

    report = monitor.dispatcher.tick(clock.now())
    assert report.completed == [target.target_id]
    assert monitor.check_queue.list() == []
    assert monitor.sessions.list(target_id=target.target_id)[0].trigger == SessionTrigger.manual
    assert monitor.audit_repo.list(outcome="check_requested")[0].params == {"request_id": request_id}


def test_requests_for_deactivated_targets_are_dropped(monitor, add_target, clock):
    target = add_target()
    monitor.dispatcher.request_check(target.target_id)
    monitor.target_service.deactivate(target.target_id)

    report = monitor.dispatcher.tick(clock.now())
    assert report.selected == []
    assert monitor.audit_repo.list(outcome="check_request_dropped")[0].target_id == target.target_id


def test_invariant_violation_is_isolated_to_its_target(monitor, add_target, fetch_client, clock, monkeypatch):
    broken = add_target(name="Broken", url="https://labor.example.gov/broken", priority=PriorityTier.critical)
    healthy = add_target(name="Healthy", url="https://labor.example.gov/healthy")
    fetch_client.set_page(healthy.url, PAGE)
    original = monitor.pipeline.run

    def run(target, trigger=SessionTrigger.scheduled):
        if target.target_id == broken.target_id:
            raise IllegalTransitionError("s-broken", SessionStatus.completed, SessionStatus.running)
        return original(target, trigger)

    monkeypatch.setattr(monitor.pipeline, "run", run)
    report = monitor.dispatcher.tick(clock.now())
    assert report.completed == [healthy.target_id]
    assert broken.target_id in report.errors
    record = monitor.audit_repo.list(outcome="dispatch_invariant_violation")[0]
    assert record.target_id == broken.target_id
    assert record.error_kind == "IllegalTransitionError"


def test_run_forever_ticks_until_stopped(monitor, monkeypatch):
    stop = threading.Event()
    ticks = []

    def tick():
        ticks.append(1)
        if len(ticks) == 1:
            raise RuntimeError("scheduler offline")
        stop.set()

    monkeypatch.setattr(monitor.dispatcher, "tick", tick)
    monkeypatch.setattr(stop, "wait", lambda timeout=None: stop.is_set())
    monitor.dispatcher.run_forever(stop)
    assert len(ticks) == 2
    assert monitor.audit_repo.list(outcome="tick_failed")[0].params == {"reason": "scheduler offline"}
