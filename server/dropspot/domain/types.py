from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from dropspot.db.models import Claim, Drop, WaitlistEntry
from dropspot.domain.lifecycle import DropStatus


@dataclass(frozen=True)
class DropRecord:
    id: str
    title: str
    description: str
    stock: int
    claim_window_start: datetime
    claim_window_end: datetime
    created_at: datetime

    @classmethod
    def from_row(cls, row: Drop) -> "DropRecord":
        return cls(
            id=row.id,
            title=row.title,
            description=row.description,
            stock=row.stock,
            claim_window_start=row.claim_window_start,
            claim_window_end=row.claim_window_end,
            created_at=row.created_at,
        )


@dataclass(frozen=True)
class WaitlistEntryRecord:
    id: str
    user_id: str
    drop_id: str
    priority_score: int
    joined_at: datetime

    @classmethod
    def from_row(cls, row: WaitlistEntry) -> "WaitlistEntryRecord":
        return cls(
            id=row.id,
            user_id=row.user_id,
            drop_id=row.drop_id,
            priority_score=row.priority_score,
            joined_at=row.joined_at,
        )


@dataclass(frozen=True)
class ClaimRecord:
    id: str
    user_id: str
    drop_id: str
    claim_code: str
    claimed_at: datetime

    @classmethod
    def from_row(cls, row: Claim) -> "ClaimRecord":
        return cls(
            id=row.id,
            user_id=row.user_id,
            drop_id=row.drop_id,
            claim_code=row.claim_code,
            claimed_at=row.claimed_at,
        )


@dataclass(frozen=True)
class RankedEntry:
    entry: WaitlistEntryRecord
    position: int


@dataclass(frozen=True)
class JoinResult:
    entry: WaitlistEntryRecord
    position: int
    total: int
    is_new: bool


@dataclass(frozen=True)
class ClaimResult:
    claim: ClaimRecord
    is_new: bool


@dataclass(frozen=True)
class DropStats:
    drop: DropRecord
    claim_count: int
    remaining_stock: int
    is_window_open: bool
    status: DropStatus


@dataclass(frozen=True)
class DropView:
    stats: DropStats
    user_has_claimed: bool
    user_in_waitlist: bool
    waitlist_position: int | None
