from __future__ import annotations

from datetime import datetime
from typing import Literal

from sqlalchemy import select
from sqlalchemy.orm import Session

from dropspot.db.models import Drop
from dropspot.domain.lifecycle import to_naive_utc, utcnow
from dropspot.domain.types import DropStats, DropView
from dropspot.services import queries
from dropspot.services.ledger import Ledger


DropFilter = Literal["all", "active", "upcoming"]


class DropCatalog:
    """Read-side view of drops for end users."""

    def __init__(self, ledger: Ledger) -> None:
        self._ledger: Ledger = ledger

    def get_drop(
        self,
        drop_id: str,
        *,
        user_id: str | None = None,
        now: datetime | None = None,
    ) -> DropView:
        ts = to_naive_utc(now) if now is not None else utcnow()

        def _work(db: Session) -> DropView:
            row = queries.find_drop(db, drop_id)
            stats = queries.drop_stats(db, row, ts)
            if user_id is None:
                return DropView(
                    stats=stats,
                    user_has_claimed=False,
                    user_in_waitlist=False,
                    waitlist_position=None,
                )
            entry = queries.find_entry(db, user_id, drop_id)
            return DropView(
                stats=stats,
                user_has_claimed=queries.find_claim(db, user_id, drop_id) is not None,
                user_in_waitlist=entry is not None,
                waitlist_position=queries.position_of(db, entry) if entry is not None else None,
            )

        return self._ledger.view(_work)

    def list_drops(self, *, filter: DropFilter = "all", now: datetime | None = None) -> list[DropStats]:
        """Active and/or upcoming drops, soonest window first. Closed drops are never listed."""
        ts = to_naive_utc(now) if now is not None else utcnow()

        def _work(db: Session) -> list[DropStats]:
            active_stmt = (
                select(Drop)
                .where(Drop.claim_window_start <= ts, Drop.claim_window_end >= ts)
                .order_by(Drop.claim_window_start.asc(), Drop.id.asc())
            )
            upcoming_stmt = (
                select(Drop)
                .where(Drop.claim_window_start > ts)
                .order_by(Drop.claim_window_start.asc(), Drop.id.asc())
            )
            rows: list[Drop] = []
            if filter in ("all", "active"):
                rows.extend(db.execute(active_stmt).scalars().all())
            if filter in ("all", "upcoming"):
                rows.extend(db.execute(upcoming_stmt).scalars().all())
            return [queries.drop_stats(db, r, ts) for r in rows]

        return self._ledger.view(_work)
