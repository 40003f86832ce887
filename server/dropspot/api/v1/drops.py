# pyright: reportCallInDefaultInitializer=false
from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from dropspot.api.deps import (
    get_claim_ledger,
    get_current_user,
    get_drop_catalog,
    get_optional_user,
    get_waitlist_ledger,
)
from dropspot.api.v1.schemas import ClaimOut, DropSummaryOut, WaitlistEntryOut
from dropspot.core.config import settings
from dropspot.db.models import User
from dropspot.db.session import get_db
from dropspot.services.action_rate import ActionRateTracker, action_rate_key
from dropspot.services.claims import ClaimLedger
from dropspot.services.drops import DropCatalog
from dropspot.services.waitlist import WaitlistLedger


router = APIRouter(prefix="/drops", tags=["drops"])


class DropDetailOut(DropSummaryOut):
    user_has_claimed: bool
    user_in_waitlist: bool
    waitlist_position: int | None = None


class DropListResponse(BaseModel):
    items: list[DropSummaryOut] = Field(default_factory=list)


class JoinResponse(BaseModel):
    entry: WaitlistEntryOut
    position: int
    total_waitlist: int
    is_new: bool
    message: str


class LeaveResponse(BaseModel):
    removed: bool
    message: str


class RankedEntryOut(WaitlistEntryOut):
    position: int


class WaitlistResponse(BaseModel):
    drop_id: str
    total_waitlist: int
    entries: list[RankedEntryOut] = Field(default_factory=list)


class ClaimResponse(BaseModel):
    claim: ClaimOut
    is_new: bool
    message: str


def _rapid_tracker() -> ActionRateTracker:
    return ActionRateTracker(window_seconds=settings.rapid_action_window_seconds)


def _waitlist_action_key(user: User) -> str:
    return action_rate_key(scope="waitlist_action", identifier=user.id)


def _record_waitlist_action(db: Session, key: str) -> None:
    """Count a join/leave that changed the waitlist; failed or no-op calls are never counted."""
    _ = _rapid_tracker().record(db, key=key)


@router.get("", response_model=DropListResponse, operation_id="drops_list")
def drops_list(
    filter: Literal["all", "active", "upcoming"] = Query("all"),
    catalog: DropCatalog = Depends(get_drop_catalog),
) -> DropListResponse:
    items = [DropSummaryOut.from_stats(s) for s in catalog.list_drops(filter=filter)]
    return DropListResponse(items=items)


@router.get("/{drop_id}", response_model=DropDetailOut, operation_id="drops_get")
def drops_get(
    drop_id: str,
    user: User | None = Depends(get_optional_user),
    catalog: DropCatalog = Depends(get_drop_catalog),
) -> DropDetailOut:
    view = catalog.get_drop(drop_id, user_id=user.id if user is not None else None)
    base = DropSummaryOut.from_stats(view.stats)
    return DropDetailOut(
        **base.model_dump(),
        user_has_claimed=view.user_has_claimed,
        user_in_waitlist=view.user_in_waitlist,
        waitlist_position=view.waitlist_position,
    )


@router.post("/{drop_id}/join", response_model=JoinResponse, operation_id="drops_join")
def drops_join(
    drop_id: str,
    response: Response,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    waitlist: WaitlistLedger = Depends(get_waitlist_ledger),
) -> JoinResponse:
    account_created_at = user.created_at
    key = _waitlist_action_key(user)
    rapid_actions = _rapid_tracker().current(db, key=key)
    result = waitlist.join(
        user.id,
        drop_id,
        account_created_at=account_created_at,
        rapid_actions=rapid_actions,
    )
    if result.is_new:
        _record_waitlist_action(db, key)
    response.status_code = status.HTTP_201_CREATED if result.is_new else status.HTTP_200_OK
    return JoinResponse(
        entry=WaitlistEntryOut.from_record(result.entry),
        position=result.position,
        total_waitlist=result.total,
        is_new=result.is_new,
        message=(
            f"Joined the waitlist at #{result.position}"
            if result.is_new
            else f"You are #{result.position} in the waitlist"
        ),
    )


@router.post("/{drop_id}/leave", response_model=LeaveResponse, operation_id="drops_leave")
def drops_leave(
    drop_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    waitlist: WaitlistLedger = Depends(get_waitlist_ledger),
) -> LeaveResponse:
    key = _waitlist_action_key(user)
    removed = waitlist.leave(user.id, drop_id)
    if removed:
        _record_waitlist_action(db, key)
    return LeaveResponse(
        removed=removed,
        message="Successfully left waitlist" if removed else "You were not in the waitlist",
    )


@router.get("/{drop_id}/waitlist", response_model=WaitlistResponse, operation_id="drops_waitlist")
def drops_waitlist(
    drop_id: str,
    waitlist: WaitlistLedger = Depends(get_waitlist_ledger),
) -> WaitlistResponse:
    ranked = waitlist.list_by_drop(drop_id)
    entries = [
        RankedEntryOut(**WaitlistEntryOut.from_record(r.entry).model_dump(), position=r.position)
        for r in ranked
    ]
    return WaitlistResponse(drop_id=drop_id, total_waitlist=len(entries), entries=entries)


@router.post("/{drop_id}/claim", response_model=ClaimResponse, operation_id="drops_claim")
def drops_claim(
    drop_id: str,
    response: Response,
    user: User = Depends(get_current_user),
    claims: ClaimLedger = Depends(get_claim_ledger),
) -> ClaimResponse:
    result = claims.claim(user.id, drop_id)
    response.status_code = status.HTTP_201_CREATED if result.is_new else status.HTTP_200_OK
    return ClaimResponse(
        claim=ClaimOut.from_record(result.claim),
        is_new=result.is_new,
        message=(
            "Successfully claimed the drop!"
            if result.is_new
            else "You have already claimed this drop"
        ),
    )
