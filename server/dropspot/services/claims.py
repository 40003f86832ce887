"""
Stock-limited claim issuance.

Everything from the window check to the insert runs inside one unit of work
keyed by the drop, with the drop row locked. Issued claims are counted from
the `claims` table itself, so the count a claim is checked against is the
count it commits against.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from dropspot.core.errors import (
    CodeGenerationExhaustedError,
    DropSpotError,
    NotFoundError,
    SoldOutError,
    WaitlistRequiredError,
    WindowNotOpenError,
)
from dropspot.db.models import Claim, Drop
from dropspot.domain.claim_code import generate_claim_code, is_valid_claim_code, normalize_claim_code
from dropspot.domain.lifecycle import DropStatus, drop_status, remaining_stock, to_naive_utc, utcnow
from dropspot.domain.types import ClaimRecord, ClaimResult, DropRecord
from dropspot.metrics.prometheus import record_claim, record_code_collision
from dropspot.services import queries
from dropspot.services.ledger import Ledger, drop_key


logger = logging.getLogger(__name__)

DEFAULT_MAX_CODE_ATTEMPTS = 10


@dataclass(frozen=True)
class ClaimWithDrop:
    claim: ClaimRecord
    drop: DropRecord


@dataclass(frozen=True)
class DropClaims:
    drop: DropRecord
    total_claims: int
    remaining_stock: int
    claims: list[ClaimRecord]


class ClaimLedger:
    def __init__(
        self,
        ledger: Ledger,
        *,
        max_code_attempts: int = DEFAULT_MAX_CODE_ATTEMPTS,
        code_factory: Callable[[], str] = generate_claim_code,
    ) -> None:
        self._ledger: Ledger = ledger
        self._max_code_attempts: int = max_code_attempts
        self._code_factory: Callable[[], str] = code_factory

    def _allocate_code(self, db: Session) -> str:
        for attempt in range(1, self._max_code_attempts + 1):
            code = self._code_factory()
            taken = db.execute(select(Claim.id).where(Claim.claim_code == code)).first()
            if taken is None:
                return code
            record_code_collision()
            logger.warning("claim code collision attempt=%d", attempt)
        raise CodeGenerationExhaustedError(self._max_code_attempts)

    def claim(self, user_id: str, drop_id: str, *, now: datetime | None = None) -> ClaimResult:
        def _work(db: Session) -> ClaimResult:
            drop = queries.lock_drop(db, drop_id)

            existing = queries.find_claim(db, user_id, drop_id)
            if existing is not None:
                return ClaimResult(claim=ClaimRecord.from_row(existing), is_new=False)

            ts = to_naive_utc(now) if now is not None else utcnow()
            status = drop_status(drop.claim_window_start, drop.claim_window_end, ts)
            if status == DropStatus.UPCOMING:
                raise WindowNotOpenError("not_started")
            if status == DropStatus.CLOSED:
                raise WindowNotOpenError("ended")

            entry = queries.find_entry(db, user_id, drop_id)
            if entry is None:
                raise WaitlistRequiredError()

            issued = queries.issued_count(db, drop_id)
            if issued >= drop.stock:
                raise SoldOutError()

            row = Claim(
                user_id=user_id,
                drop_id=drop_id,
                claim_code=self._allocate_code(db),
                claimed_at=ts,
            )
            db.add(row)
            db.flush()

            db.delete(entry)
            db.flush()
            return ClaimResult(claim=ClaimRecord.from_row(row), is_new=True)

        started = time.perf_counter()
        try:
            result = self._ledger.run(drop_key(drop_id), _work)
        except DropSpotError as exc:
            record_claim(outcome=exc.code, latency_s=time.perf_counter() - started)
            if isinstance(exc, SoldOutError):
                logger.info("claim rejected sold out drop_id=%s user_id=%s", drop_id, user_id)
            raise
        record_claim(
            outcome="issued" if result.is_new else "existing",
            latency_s=time.perf_counter() - started,
        )
        if result.is_new:
            logger.info(
                "claim issued drop_id=%s user_id=%s claim_id=%s code=%s",
                drop_id,
                user_id,
                result.claim.id,
                result.claim.claim_code,
            )
        return result

    def issued_count(self, drop_id: str) -> int:
        return self._ledger.view(lambda db: queries.issued_count(db, drop_id))

    def get_by_code(self, raw_code: str) -> ClaimWithDrop:
        code = normalize_claim_code(raw_code)
        if not is_valid_claim_code(code):
            raise NotFoundError("Claim not found")

        def _work(db: Session) -> ClaimWithDrop:
            found = db.execute(
                select(Claim, Drop)
                .join(Drop, Drop.id == Claim.drop_id)
                .where(Claim.claim_code == code)
            ).first()
            if found is None:
                raise NotFoundError("Claim not found")
            claim, drop = found
            return ClaimWithDrop(claim=ClaimRecord.from_row(claim), drop=DropRecord.from_row(drop))

        return self._ledger.view(_work)

    def list_by_user(self, user_id: str) -> list[ClaimWithDrop]:
        def _work(db: Session) -> list[ClaimWithDrop]:
            rows = db.execute(
                select(Claim, Drop)
                .join(Drop, Drop.id == Claim.drop_id)
                .where(Claim.user_id == user_id)
                .order_by(Claim.claimed_at.desc())
            ).all()
            return [
                ClaimWithDrop(claim=ClaimRecord.from_row(c), drop=DropRecord.from_row(d))
                for c, d in rows
            ]

        return self._ledger.view(_work)

    def list_by_drop(self, drop_id: str) -> DropClaims:
        def _work(db: Session) -> DropClaims:
            drop = queries.find_drop(db, drop_id)
            claims = [
                ClaimRecord.from_row(c)
                for c in db.execute(
                    select(Claim)
                    .where(Claim.drop_id == drop_id)
                    .order_by(Claim.claimed_at.asc(), Claim.id.asc())
                )
                .scalars()
                .all()
            ]
            return DropClaims(
                drop=DropRecord.from_row(drop),
                total_claims=len(claims),
                remaining_stock=remaining_stock(drop.stock, len(claims)),
                claims=claims,
            )

        return self._ledger.view(_work)

    def purge(self, claim_id: str) -> bool:
        """Administrative removal of an issued claim; returns its unit of stock."""
        drop_id = self._ledger.view(
            lambda db: db.execute(
                select(Claim.drop_id).where(Claim.id == claim_id)
            ).scalar_one_or_none()
        )
        if drop_id is None:
            raise NotFoundError("Claim not found")

        def _work(db: Session) -> bool:
            _ = queries.lock_drop(db, drop_id)
            row = db.get(Claim, claim_id)
            if row is None:
                return False
            db.delete(row)
            return True

        removed = self._ledger.run(drop_key(drop_id), _work)
        if removed:
            logger.warning("claim purged claim_id=%s drop_id=%s", claim_id, drop_id)
        return removed
