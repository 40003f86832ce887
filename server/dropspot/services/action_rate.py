from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import hashlib

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dropspot.db.models import ActionRate
from dropspot.domain.lifecycle import utcnow


def _safe_key(raw: str) -> str:
    if len(raw) <= 512:
        return raw
    digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()
    return f"rate|sha256:{digest}"


def action_rate_key(*, scope: str, identifier: str | None, ip: str | None = None) -> str:
    ident = ""
    if isinstance(identifier, str) and identifier.strip() != "":
        ident = identifier.strip().lower()
    ip_part = ip.strip() if isinstance(ip, str) and ip.strip() != "" else "unknown"
    return _safe_key(f"{scope}|{ip_part}|{ident}")


@dataclass(frozen=True)
class RateLimitCheck:
    blocked: bool
    retry_after_seconds: int


class ActionRateTracker:
    """Fixed-window action counter keyed by an arbitrary string.

    Used both to throttle repeated login failures and to measure how many
    waitlist actions a user fired recently (the rapid-action penalty input).
    """

    def __init__(self, *, window_seconds: int, max_count: int = 0, enabled: bool = True):
        self._window_seconds: int = int(window_seconds)
        self._max_count: int = int(max_count)
        self._enabled: bool = bool(enabled) and self._window_seconds > 0

    def current(self, db: Session, *, key: str, now: datetime | None = None) -> int:
        if not self._enabled:
            return 0
        ts = now or utcnow()
        row = db.get(ActionRate, key)
        if row is None or row.reset_at <= ts:
            return 0
        return int(row.count)

    def check(self, db: Session, *, key: str, now: datetime | None = None) -> RateLimitCheck:
        if not self._enabled or self._max_count <= 0:
            return RateLimitCheck(blocked=False, retry_after_seconds=0)

        ts = now or utcnow()
        row = db.get(ActionRate, key)
        if row is None or row.reset_at <= ts or row.count < self._max_count:
            return RateLimitCheck(blocked=False, retry_after_seconds=0)
        retry_after = max(0, int((row.reset_at - ts).total_seconds()))
        return RateLimitCheck(blocked=True, retry_after_seconds=retry_after)

    def record(self, db: Session, *, key: str, now: datetime | None = None) -> int:
        """Count one action and commit; returns the count in the current window."""
        if not self._enabled:
            return 0

        ts = now or utcnow()
        reset_at = ts + timedelta(seconds=self._window_seconds)

        for _ in range(2):
            row = (
                db.execute(select(ActionRate).where(ActionRate.key == key).with_for_update())
                .scalars()
                .one_or_none()
            )
            if row is None:
                row = ActionRate(key=key, count=1, reset_at=reset_at)
                db.add(row)
            elif row.reset_at <= ts:
                row.count = 1
                row.reset_at = reset_at
            else:
                row.count = int(row.count) + 1
            count = int(row.count)
            try:
                db.commit()
            except IntegrityError:
                # Lost the insert race for a fresh key; the row exists now.
                db.rollback()
                continue
            return count
        return 0

    def reset(self, db: Session, *, key: str) -> None:
        if not self._enabled:
            return
        row = db.get(ActionRate, key)
        if row is None:
            return
        db.delete(row)
        db.commit()
