# pyright: reportCallInDefaultInitializer=false
from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from dropspot.api.deps import get_claim_ledger, get_current_user
from dropspot.api.v1.schemas import ClaimOut, DropOut
from dropspot.db.models import User
from dropspot.services.claims import ClaimLedger, ClaimWithDrop


router = APIRouter(prefix="/claims", tags=["claims"])


class ClaimWithDropOut(ClaimOut):
    drop: DropOut


class ClaimListResponse(BaseModel):
    items: list[ClaimWithDropOut] = Field(default_factory=list)


def _with_drop(item: ClaimWithDrop) -> ClaimWithDropOut:
    return ClaimWithDropOut(
        **ClaimOut.from_record(item.claim).model_dump(),
        drop=DropOut.from_record(item.drop),
    )


@router.get("/me", response_model=ClaimListResponse, operation_id="claims_me")
def claims_me(
    user: User = Depends(get_current_user),
    claims: ClaimLedger = Depends(get_claim_ledger),
) -> ClaimListResponse:
    return ClaimListResponse(items=[_with_drop(c) for c in claims.list_by_user(user.id)])


@router.get("/{code}", response_model=ClaimWithDropOut, operation_id="claims_get_by_code")
def claims_get_by_code(
    code: str,
    claims: ClaimLedger = Depends(get_claim_ledger),
) -> ClaimWithDropOut:
    return _with_drop(claims.get_by_code(code))
