from __future__ import annotations

from datetime import timedelta

from dropspot.db.session import SessionLocal
from dropspot.domain.lifecycle import utcnow
from dropspot.services.action_rate import ActionRateTracker, action_rate_key


def test_key_normalizes_identifier() -> None:
    assert action_rate_key(scope="auth_login", identifier=" A@B.com ", ip="1.2.3.4") == "auth_login|1.2.3.4|a@b.com"
    assert action_rate_key(scope="waitlist_action", identifier="u1") == "waitlist_action|unknown|u1"
    assert len(action_rate_key(scope="s", identifier="x" * 1000)) < 512


def test_record_counts_within_window_and_resets_after() -> None:
    tracker = ActionRateTracker(window_seconds=60)
    now = utcnow()
    with SessionLocal() as db:
        assert tracker.record(db, key="k", now=now) == 1
        assert tracker.record(db, key="k", now=now + timedelta(seconds=10)) == 2
        assert tracker.current(db, key="k", now=now + timedelta(seconds=20)) == 2
        assert tracker.record(db, key="k", now=now + timedelta(seconds=61)) == 1


def test_check_blocks_at_limit() -> None:
    tracker = ActionRateTracker(window_seconds=300, max_count=2)
    now = utcnow()
    with SessionLocal() as db:
        assert tracker.check(db, key="k", now=now).blocked is False
        _ = tracker.record(db, key="k", now=now)
        _ = tracker.record(db, key="k", now=now)
        check = tracker.check(db, key="k", now=now + timedelta(seconds=100))
        assert check.blocked is True
        assert check.retry_after_seconds == 200

        tracker.reset(db, key="k")
        assert tracker.check(db, key="k", now=now).blocked is False


def test_disabled_tracker_counts_nothing() -> None:
    tracker = ActionRateTracker(window_seconds=0)
    with SessionLocal() as db:
        assert tracker.record(db, key="k") == 0
        assert tracker.current(db, key="k") == 0
