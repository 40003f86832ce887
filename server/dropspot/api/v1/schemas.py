from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from dropspot.domain.lifecycle import DropStatus
from dropspot.domain.types import ClaimRecord, DropRecord, DropStats, WaitlistEntryRecord


class DropOut(BaseModel):
    id: str
    title: str
    description: str
    stock: int
    claim_window_start: datetime
    claim_window_end: datetime
    created_at: datetime

    @classmethod
    def from_record(cls, r: DropRecord) -> "DropOut":
        return cls(
            id=r.id,
            title=r.title,
            description=r.description,
            stock=r.stock,
            claim_window_start=r.claim_window_start,
            claim_window_end=r.claim_window_end,
            created_at=r.created_at,
        )


class DropSummaryOut(DropOut):
    remaining_stock: int
    is_claim_window_open: bool
    status: DropStatus
    claim_count: int

    @classmethod
    def from_stats(cls, s: DropStats) -> "DropSummaryOut":
        base = DropOut.from_record(s.drop)
        return cls(
            **base.model_dump(),
            remaining_stock=s.remaining_stock,
            is_claim_window_open=s.is_window_open,
            status=s.status,
            claim_count=s.claim_count,
        )


class WaitlistEntryOut(BaseModel):
    id: str
    user_id: str
    drop_id: str
    priority_score: int
    joined_at: datetime

    @classmethod
    def from_record(cls, r: WaitlistEntryRecord) -> "WaitlistEntryOut":
        return cls(
            id=r.id,
            user_id=r.user_id,
            drop_id=r.drop_id,
            priority_score=r.priority_score,
            joined_at=r.joined_at,
        )


class ClaimOut(BaseModel):
    id: str
    user_id: str
    drop_id: str
    claim_code: str
    claimed_at: datetime

    @classmethod
    def from_record(cls, r: ClaimRecord) -> "ClaimOut":
        return cls(
            id=r.id,
            user_id=r.user_id,
            drop_id=r.drop_id,
            claim_code=r.claim_code,
            claimed_at=r.claimed_at,
        )
