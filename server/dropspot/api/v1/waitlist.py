# pyright: reportCallInDefaultInitializer=false
from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from dropspot.api.deps import get_current_user, get_waitlist_ledger
from dropspot.api.v1.schemas import DropOut, WaitlistEntryOut
from dropspot.db.models import User
from dropspot.services.waitlist import WaitlistLedger


router = APIRouter(prefix="/waitlist", tags=["waitlist"])


class MyWaitlistItem(WaitlistEntryOut):
    drop: DropOut
    position: int
    total_waitlist: int


class MyWaitlistResponse(BaseModel):
    items: list[MyWaitlistItem] = Field(default_factory=list)


@router.get("/me", response_model=MyWaitlistResponse, operation_id="waitlist_me")
def waitlist_me(
    user: User = Depends(get_current_user),
    waitlist: WaitlistLedger = Depends(get_waitlist_ledger),
) -> MyWaitlistResponse:
    items = [
        MyWaitlistItem(
            **WaitlistEntryOut.from_record(it.entry).model_dump(),
            drop=DropOut.from_record(it.drop),
            position=it.position,
            total_waitlist=it.total,
        )
        for it in waitlist.list_by_user(user.id)
    ]
    return MyWaitlistResponse(items=items)
