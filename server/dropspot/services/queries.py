from __future__ import annotations

from datetime import datetime

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from dropspot.core.errors import NotFoundError
from dropspot.db.models import Claim, Drop, WaitlistEntry
from dropspot.domain.lifecycle import drop_status, is_window_open, remaining_stock
from dropspot.domain.types import DropRecord, DropStats


def find_drop(db: Session, drop_id: str) -> Drop:
    row = db.get(Drop, drop_id)
    if row is None:
        raise NotFoundError("Drop not found")
    return row


def lock_drop(db: Session, drop_id: str) -> Drop:
    row = db.execute(
        select(Drop).where(Drop.id == drop_id).with_for_update()
    ).scalar_one_or_none()
    if row is None:
        raise NotFoundError("Drop not found")
    return row


def issued_count(db: Session, drop_id: str) -> int:
    n = db.execute(select(func.count(Claim.id)).where(Claim.drop_id == drop_id)).scalar_one()
    return int(n)


def find_claim(db: Session, user_id: str, drop_id: str) -> Claim | None:
    return db.execute(
        select(Claim).where(Claim.user_id == user_id, Claim.drop_id == drop_id)
    ).scalar_one_or_none()


def find_entry(db: Session, user_id: str, drop_id: str) -> WaitlistEntry | None:
    return db.execute(
        select(WaitlistEntry).where(
            WaitlistEntry.user_id == user_id,
            WaitlistEntry.drop_id == drop_id,
        )
    ).scalar_one_or_none()


def waitlist_count(db: Session, drop_id: str) -> int:
    n = db.execute(
        select(func.count(WaitlistEntry.id)).where(WaitlistEntry.drop_id == drop_id)
    ).scalar_one()
    return int(n)


def position_of(db: Session, entry: WaitlistEntry) -> int:
    """1-indexed rank: score desc, then earlier join, then id."""
    ahead = db.execute(
        select(func.count(WaitlistEntry.id)).where(
            WaitlistEntry.drop_id == entry.drop_id,
            or_(
                WaitlistEntry.priority_score > entry.priority_score,
                and_(
                    WaitlistEntry.priority_score == entry.priority_score,
                    WaitlistEntry.joined_at < entry.joined_at,
                ),
                and_(
                    WaitlistEntry.priority_score == entry.priority_score,
                    WaitlistEntry.joined_at == entry.joined_at,
                    WaitlistEntry.id < entry.id,
                ),
            ),
        )
    ).scalar_one()
    return int(ahead) + 1


def ranked_entries(db: Session, drop_id: str) -> list[WaitlistEntry]:
    return list(
        db.execute(
            select(WaitlistEntry)
            .where(WaitlistEntry.drop_id == drop_id)
            .order_by(
                WaitlistEntry.priority_score.desc(),
                WaitlistEntry.joined_at.asc(),
                WaitlistEntry.id.asc(),
            )
        )
        .scalars()
        .all()
    )


def drop_stats(db: Session, row: Drop, now: datetime) -> DropStats:
    issued = issued_count(db, row.id)
    return DropStats(
        drop=DropRecord.from_row(row),
        claim_count=issued,
        remaining_stock=remaining_stock(row.stock, issued),
        is_window_open=is_window_open(row.claim_window_start, row.claim_window_end, now),
        status=drop_status(row.claim_window_start, row.claim_window_end, now),
    )
