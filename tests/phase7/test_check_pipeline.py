import pytest

from compliance_watch.acquisition.errors import NotFoundError, RateLimitedError
from compliance_watch.classifier.errors import ClassifierUnavailableError
from compliance_watch.classifier.models import FALLBACK_REASONING
from compliance_watch.common.enums import FailureKind, PriorityTier, SessionStatus, SessionTrigger, VerdictKind
from compliance_watch.diff.engine import content_hash
from compliance_watch.sessions.errors import IllegalTransitionError
from compliance_watch.targets.models import MonitoredTarget


PAGE_V1 = "# Final pay\nDeadline: 72 hours after separation\n"
PAGE_V2 = "# Final pay\nDeadline: 24 hours after separation\nPenalty: one day of wages\n"
VERDICT = '{"score": 85, "isMeaningful": true, "reasoning": "New deadline added"}'


@pytest.fixture
def target(add_target, fetch_client):
    target = add_target(name="Final pay", url="https://labor.example.gov/final-pay", priority=PriorityTier.critical)
    fetch_client.set_page(target.url, PAGE_V1)
    return target


def _baseline(monitor, target):
    outcome = monitor.pipeline.run(target)
    assert outcome.first_seen is True
    return outcome


def test_first_fetch_creates_baseline_without_analysis(monitor, target, clock):
    outcome = monitor.pipeline.run(target)
    assert outcome.admitted is True
    assert outcome.session.status == SessionStatus.completed
    assert outcome.session.items_examined == 1
    assert outcome.changed is True
    assert outcome.first_seen is True
    assert outcome.analysis is None
    snapshot = monitor.snapshots.current(target.target_id)
    assert snapshot.content_hash == content_hash(PAGE_V1)
    assert monitor.analyses.list() == []
    assert monitor.targets.get(target.target_id).last_checked == clock.now()


def test_identical_content_completes_without_analysis(monitor, target):
    _baseline(monitor, target)
    before = monitor.snapshots.current(target.target_id)
    outcome = monitor.pipeline.run(target)
    assert outcome.session.status == SessionStatus.completed
    assert outcome.changed is False
    assert outcome.analysis is None
    assert monitor.snapshots.current(target.target_id) == before
    assert monitor.analyses.list() == []


def test_meaningful_change_is_analysed_and_snapshot_replaced(monitor, target, fetch_client, reasoning_client):
    _baseline(monitor, target)
    fetch_client.set_page(target.url, PAGE_V2)
    reasoning_client.reply_with(VERDICT)

    outcome = monitor.pipeline.run(target)
    assert outcome.session.status == SessionStatus.completed
    assert outcome.changed is True
    analysis = outcome.analysis
    assert analysis.score == 85
    assert analysis.is_meaningful is True
    assert analysis.reasoning == "New deadline added"
    assert analysis.session_id == outcome.session.session_id
    assert monitor.analyses.for_session(outcome.session.session_id) == analysis
    assert monitor.snapshots.current(target.target_id).content_hash == content_hash(PAGE_V2)
    assert "+Deadline: 24 hours after separation" in reasoning_client.prompts[0]


def test_low_score_overrides_service_claim(monitor, target, fetch_client, reasoning_client):
    _baseline(monitor, target)
    fetch_client.set_page(target.url, PAGE_V2)
    reasoning_client.reply_with('{"score": 40, "isMeaningful": true, "reasoning": "Typo fix"}')
    outcome = monitor.pipeline.run(target)
    assert outcome.analysis.is_meaningful is False
    assert outcome.analysis.service_claimed_meaningful is True


def test_malformed_verdict_is_flagged_for_review(monitor, target, fetch_client, reasoning_client):
    _baseline(monitor, target)
    fetch_client.set_page(target.url, PAGE_V2)
    reasoning_client.reply_with("Looks important to me!")
    outcome = monitor.pipeline.run(target)
    assert outcome.session.status == SessionStatus.completed
    assert outcome.analysis.verdict_kind == VerdictKind.fallback
    assert outcome.analysis.is_meaningful is True
    assert outcome.analysis.score == 50
    assert outcome.analysis.reasoning == FALLBACK_REASONING


def test_rate_limited_fetch_fails_session_and_backs_off(monitor, target, fetch_client):
    fetch_client.set_page(target.url, RateLimitedError("HTTP 429", status_code=429))
    outcome = monitor.pipeline.run(target)
    assert outcome.session.status == SessionStatus.failed
    assert outcome.session.error_kind == FailureKind.rateLimited
    assert outcome.failure_kind == FailureKind.rateLimited
    assert monitor.snapshots.current(target.target_id) is None
    base = monitor.scheduler.base_interval(target)
    assert monitor.scheduler.effective_interval(target).total_seconds() == base * 2 * 60


def test_not_found_fetch_fails_session(monitor, target, fetch_client):
    fetch_client.set_page(target.url, NotFoundError("HTTP 404", status_code=404))
    outcome = monitor.pipeline.run(target)
    assert outcome.session.error_kind == FailureKind.notFound
    assert outcome.session.error == "HTTP 404"


def test_unavailable_classifier_skips_analysis_but_keeps_snapshot(monitor, target, fetch_client, reasoning_client):
    _baseline(monitor, target)
    fetch_client.set_page(target.url, PAGE_V2)
    reasoning_client.reply_with(ClassifierUnavailableError("service down"))

    outcome = monitor.pipeline.run(target)
    assert outcome.session.status == SessionStatus.completed
    assert outcome.classification_skipped is True
    assert outcome.analysis is None
    assert monitor.analyses.list() == []
    assert monitor.snapshots.current(target.target_id).content_hash == content_hash(PAGE_V2)
    record = monitor.audit_repo.list(outcome="classification_skipped")[0]
    assert record.session_id == outcome.session.session_id
    assert record.error_kind == "unreachable"


def test_unexpected_step_error_fails_session_as_internal(monitor, target, fetch_client, reasoning_client, monkeypatch):
    _baseline(monitor, target)
    fetch_client.set_page(target.url, PAGE_V2)
    reasoning_client.reply_with(VERDICT)

    def broken_add(analysis):
        raise RuntimeError("analysis store offline")

    monkeypatch.setattr(monitor.analyses, "add", broken_add)
    outcome = monitor.pipeline.run(target)
    assert outcome.session.status == SessionStatus.failed
    assert outcome.session.error_kind == FailureKind.internal
    assert "analysis store offline" in outcome.session.error
    assert monitor.sessions.open_session_for(target.target_id) is None


def test_open_session_rejects_overlapping_run(monitor, target, fetch_client):
    open_session, _ = monitor.session_manager.start(target, SessionTrigger.manual)
    outcome = monitor.pipeline.run(target)
    assert outcome.admitted is False
    assert outcome.session.session_id == open_session.session_id
    assert fetch_client.calls == []


def test_invariant_violation_resolves_session_then_propagates(monitor, target, monkeypatch):
    def refuse(session, items_examined):
        raise IllegalTransitionError(session.session_id, SessionStatus.completed, SessionStatus.completed)

    monkeypatch.setattr(monitor.session_manager, "complete", refuse)
    with pytest.raises(IllegalTransitionError):
        monitor.pipeline.run(target)
    sessions = monitor.sessions.list(target_id=target.target_id)
    assert [session.status for session in sessions] == [SessionStatus.failed]
    assert sessions[0].error_kind == FailureKind.internal


def test_fetch_request_follows_config(monitor, target, fetch_client):
    monitor.pipeline.run(target)
    request = fetch_client.calls[0]
    assert request.url == target.url
    assert request.formats == ["markdown"]
    assert request.only_main_content is False
    assert request.timeout_s == monitor.config.fetch_timeout_seconds


def test_rejected_fetch_request_fails_session_and_keeps_target_schedulable(monitor, fetch_client, clock):
    target = MonitoredTarget(
        target_id="t-ftp",
        url="ftp://files.example.gov/rule",
        name="Legacy rule file",
        priority=PriorityTier.high,
    )
    monitor.targets.add(target)

    outcome = monitor.pipeline.run(target)
    assert outcome.session.status == SessionStatus.failed
    assert outcome.failure_kind == FailureKind.internal
    assert "FetchRequestError" in outcome.session.error
    assert fetch_client.calls == []
    assert monitor.sessions.open_session_for("t-ftp") is None

    clock.advance(minutes=2880)
    assert [due.target_id for due in monitor.scheduler.select_due(clock.now())] == ["t-ftp"]
