from compliance_watch.common.hashes import sha256_text
from compliance_watch.diff.engine import NEW_PAGE_HEADER, DiffEngine, content_hash, normalize_content
from compliance_watch.snapshot_store.models import SnapshotRecord
from compliance_watch.snapshot_store.repository import SnapshotRepository
from compliance_watch.snapshot_store.service import SnapshotStoreService


PAGE_V1 = "# Sick leave\nAccrual: 1 hour per 30 worked\nCap: 40 hours\n"
PAGE_V2 = "# Sick leave\nAccrual: 1 hour per 30 worked\nCap: 48 hours\nEffective January 1\n"


def _engine():
    store = SnapshotStoreService(SnapshotRepository())
    return DiffEngine(store), store


def test_first_observation_is_a_baseline(clock):
    engine, store = _engine()
    result = engine.compare_with_current("t1", PAGE_V1)
    assert result.changed is True
    assert result.first_seen is True
    assert result.needs_classification is False
    assert result.diff.text.startswith(NEW_PAGE_HEADER)
    assert "+Cap: 40 hours" in result.diff.text
    assert result.diff.structured == {"added": [normalize_content(PAGE_V1)], "removed": []}

    snapshot = engine.commit("t1", result, clock.now())
    assert store.current("t1") == snapshot
    assert snapshot.content_hash == sha256_text(normalize_content(PAGE_V1))


def test_identical_content_is_unchanged_twice_in_a_row(clock):
    engine, store = _engine()
    engine.commit("t1", engine.compare_with_current("t1", PAGE_V1), clock.now())
    baseline = store.current("t1")

    for _ in range(2):
        result = engine.compare_with_current("t1", PAGE_V1)
        assert result.changed is False
        assert result.needs_classification is False
        assert result.diff.is_empty
        assert engine.commit("t1", result, clock.now()) is None
    assert store.current("t1") == baseline
    assert store.history("t1") == []


def test_whitespace_only_churn_is_not_a_change(clock):
    engine, _ = _engine()
    engine.commit("t1", engine.compare_with_current("t1", PAGE_V1), clock.now())
    churned = PAGE_V1.replace("\n", "  \r\n") + "\n\n"
    assert content_hash(churned) == content_hash(PAGE_V1)
    assert engine.compare_with_current("t1", churned).changed is False


def test_changed_content_produces_line_diff_and_fragments(clock):
    engine, store = _engine()
    engine.commit("t1", engine.compare_with_current("t1", PAGE_V1), clock.now())
    result = engine.compare_with_current("t1", PAGE_V2)

    assert result.changed is True
    assert result.needs_classification is True
    assert "-Cap: 40 hours" in result.diff.text
    assert "+Cap: 48 hours" in result.diff.text
    assert "+Effective January 1" in result.diff.text
    assert result.diff.removed == ["Cap: 40 hours"]
    assert result.diff.added == ["Cap: 48 hours\nEffective January 1"]

    previous = store.current("t1")
    snapshot = engine.commit("t1", result, clock.now())
    assert store.current("t1") == snapshot
    assert store.history("t1") == [previous]


def test_removed_section_is_reported():
    engine, _ = _engine()
    previous = engine.compare(PAGE_V2, None)
    snapshot = SnapshotRecord(
        snapshot_id="s1",
        target_id="t1",
        content_hash=previous.content_hash,
        content=previous.content,
        captured_at=None,
    )
    result = engine.compare("# Sick leave\n", snapshot)
    assert result.changed is True
    assert result.diff.added == []
    assert result.diff.removed == [
        "Accrual: 1 hour per 30 worked\nCap: 48 hours\nEffective January 1"
    ]
