from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from dropspot.core.errors import AlreadyClaimedError, DropSpotError, WindowClosedError
from dropspot.db.models import Drop, WaitlistEntry
from dropspot.domain import priority
from dropspot.domain.lifecycle import to_naive_utc, utcnow
from dropspot.domain.types import DropRecord, JoinResult, RankedEntry, WaitlistEntryRecord
from dropspot.metrics.prometheus import record_waitlist_action
from dropspot.services import queries
from dropspot.services.ledger import Ledger, drop_key


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserWaitlistItem:
    entry: WaitlistEntryRecord
    drop: DropRecord
    position: int
    total: int


class WaitlistLedger:
    """Per-user waitlist admission with idempotent join/leave."""

    def __init__(
        self,
        ledger: Ledger,
        *,
        coefficients: priority.PriorityCoefficients,
        latency_source: Callable[[], int] = priority.placeholder_signup_latency_ms,
    ) -> None:
        self._ledger: Ledger = ledger
        self._coefficients: priority.PriorityCoefficients = coefficients
        self._latency_source: Callable[[], int] = latency_source

    def join(
        self,
        user_id: str,
        drop_id: str,
        *,
        account_created_at: datetime,
        rapid_actions: int = 0,
        signup_latency_ms: int | None = None,
        now: datetime | None = None,
    ) -> JoinResult:
        def _work(db: Session) -> JoinResult:
            drop = queries.lock_drop(db, drop_id)
            ts = to_naive_utc(now) if now is not None else utcnow()
            if queries.find_claim(db, user_id, drop_id) is not None:
                raise AlreadyClaimedError()
            if ts > drop.claim_window_end:
                raise WindowClosedError()

            entry = queries.find_entry(db, user_id, drop_id)
            is_new = entry is None
            if entry is None:
                latency = signup_latency_ms if signup_latency_ms is not None else self._latency_source()
                entry = WaitlistEntry(
                    user_id=user_id,
                    drop_id=drop_id,
                    priority_score=priority.score(
                        latency,
                        priority.account_age_days(to_naive_utc(account_created_at), ts),
                        max(0, rapid_actions),
                        self._coefficients,
                    ),
                    joined_at=ts,
                )
                db.add(entry)
                db.flush()

            return JoinResult(
                entry=WaitlistEntryRecord.from_row(entry),
                position=queries.position_of(db, entry),
                total=queries.waitlist_count(db, drop_id),
                is_new=is_new,
            )

        try:
            result = self._ledger.run(drop_key(drop_id), _work)
        except DropSpotError as exc:
            record_waitlist_action(action="join", outcome=exc.code)
            raise
        record_waitlist_action(action="join", outcome="joined" if result.is_new else "existing")
        if result.is_new:
            logger.info(
                "waitlist join drop_id=%s user_id=%s score=%d position=%d",
                drop_id,
                user_id,
                result.entry.priority_score,
                result.position,
            )
        return result

    def leave(self, user_id: str, drop_id: str) -> bool:
        def _work(db: Session) -> bool:
            _ = queries.lock_drop(db, drop_id)
            res = db.execute(
                delete(WaitlistEntry).where(
                    WaitlistEntry.user_id == user_id,
                    WaitlistEntry.drop_id == drop_id,
                )
            )
            return bool(res.rowcount)

        removed = self._ledger.run(drop_key(drop_id), _work)
        record_waitlist_action(action="leave", outcome="removed" if removed else "absent")
        return removed

    def position(self, user_id: str, drop_id: str) -> int | None:
        def _work(db: Session) -> int | None:
            entry = queries.find_entry(db, user_id, drop_id)
            if entry is None:
                return None
            return queries.position_of(db, entry)

        return self._ledger.view(_work)

    def count(self, drop_id: str) -> int:
        return self._ledger.view(lambda db: queries.waitlist_count(db, drop_id))

    def list_by_drop(self, drop_id: str) -> list[RankedEntry]:
        def _work(db: Session) -> list[RankedEntry]:
            _ = queries.find_drop(db, drop_id)
            rows = queries.ranked_entries(db, drop_id)
            return [
                RankedEntry(entry=WaitlistEntryRecord.from_row(r), position=i)
                for i, r in enumerate(rows, start=1)
            ]

        return self._ledger.view(_work)

    def list_by_user(self, user_id: str) -> list[UserWaitlistItem]:
        def _work(db: Session) -> list[UserWaitlistItem]:
            rows = db.execute(
                select(WaitlistEntry, Drop)
                .join(Drop, Drop.id == WaitlistEntry.drop_id)
                .where(WaitlistEntry.user_id == user_id)
                .order_by(WaitlistEntry.joined_at.desc())
            ).all()
            return [
                UserWaitlistItem(
                    entry=WaitlistEntryRecord.from_row(entry),
                    drop=DropRecord.from_row(drop),
                    position=queries.position_of(db, entry),
                    total=queries.waitlist_count(db, drop.id),
                )
                for entry, drop in rows
            ]

        return self._ledger.view(_work)
