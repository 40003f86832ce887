# pyright: reportCallInDefaultInitializer=false
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from dropspot.api.deps import get_admin_manager, get_claim_ledger, require_admin
from dropspot.api.v1.schemas import ClaimOut, DropOut, DropSummaryOut
from dropspot.db.models import User
from dropspot.services.admin import AdminLifecycleManager, DropUpdate
from dropspot.services.claims import ClaimLedger


router = APIRouter(prefix="/admin", tags=["admin"])


class DropCreateRequest(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    stock: int = Field(..., gt=0)
    claim_window_start: datetime
    claim_window_end: datetime


class DropUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    stock: int | None = None
    claim_window_start: datetime | None = None
    claim_window_end: datetime | None = None


class AdminDropListResponse(BaseModel):
    items: list[DropSummaryOut] = Field(default_factory=list)


class DropClaimsResponse(BaseModel):
    drop: DropOut
    total_claims: int
    remaining_stock: int
    claims: list[ClaimOut] = Field(default_factory=list)


class DeletedResponse(BaseModel):
    ok: bool
    message: str


@router.get("/drops", response_model=AdminDropListResponse, operation_id="admin_drops_list")
def admin_drops_list(
    _admin: User = Depends(require_admin),
    manager: AdminLifecycleManager = Depends(get_admin_manager),
) -> AdminDropListResponse:
    return AdminDropListResponse(
        items=[DropSummaryOut.from_stats(s) for s in manager.list_drops()]
    )


@router.post(
    "/drops",
    response_model=DropOut,
    status_code=status.HTTP_201_CREATED,
    operation_id="admin_drops_create",
)
def admin_drops_create(
    payload: DropCreateRequest,
    _admin: User = Depends(require_admin),
    manager: AdminLifecycleManager = Depends(get_admin_manager),
) -> DropOut:
    record = manager.create_drop(
        title=payload.title,
        description=payload.description,
        stock=payload.stock,
        claim_window_start=payload.claim_window_start,
        claim_window_end=payload.claim_window_end,
    )
    return DropOut.from_record(record)


@router.put("/drops/{drop_id}", response_model=DropOut, operation_id="admin_drops_update")
def admin_drops_update(
    drop_id: str,
    payload: DropUpdateRequest,
    _admin: User = Depends(require_admin),
    manager: AdminLifecycleManager = Depends(get_admin_manager),
) -> DropOut:
    changes = DropUpdate(**payload.model_dump(exclude_unset=True, exclude_none=True))
    return DropOut.from_record(manager.update_drop(drop_id, changes))


@router.delete("/drops/{drop_id}", response_model=DeletedResponse, operation_id="admin_drops_delete")
def admin_drops_delete(
    drop_id: str,
    _admin: User = Depends(require_admin),
    manager: AdminLifecycleManager = Depends(get_admin_manager),
) -> DeletedResponse:
    _ = manager.delete_drop(drop_id)
    return DeletedResponse(ok=True, message="Drop deleted")


@router.get(
    "/drops/{drop_id}/claims",
    response_model=DropClaimsResponse,
    operation_id="admin_drops_claims",
)
def admin_drops_claims(
    drop_id: str,
    _admin: User = Depends(require_admin),
    claims: ClaimLedger = Depends(get_claim_ledger),
) -> DropClaimsResponse:
    result = claims.list_by_drop(drop_id)
    return DropClaimsResponse(
        drop=DropOut.from_record(result.drop),
        total_claims=result.total_claims,
        remaining_stock=result.remaining_stock,
        claims=[ClaimOut.from_record(c) for c in result.claims],
    )


@router.delete(
    "/claims/{claim_id}",
    response_model=DeletedResponse,
    operation_id="admin_claims_delete",
)
def admin_claims_delete(
    claim_id: str,
    _admin: User = Depends(require_admin),
    claims: ClaimLedger = Depends(get_claim_ledger),
) -> DeletedResponse:
    removed = claims.purge(claim_id)
    return DeletedResponse(
        ok=removed,
        message="Claim removed" if removed else "Claim was already removed",
    )
