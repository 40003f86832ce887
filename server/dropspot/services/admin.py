from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from dropspot.core.errors import DropSpotError, ValidationError
from dropspot.db.models import Drop, WaitlistEntry
from dropspot.domain.lifecycle import to_naive_utc, utcnow
from dropspot.domain.types import DropRecord, DropStats
from dropspot.metrics.prometheus import record_admin_mutation
from dropspot.services import queries
from dropspot.services.ledger import Ledger, drop_key


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DropUpdate:
    """Partial update; `None` means "leave unchanged"."""

    title: str | None = None
    description: str | None = None
    stock: int | None = None
    claim_window_start: datetime | None = None
    claim_window_end: datetime | None = None


def _validate_window(start: datetime, end: datetime) -> None:
    if end <= start:
        raise ValidationError("Claim window end must be after start")


def _validate_title(title: str) -> str:
    t = title.strip()
    if t == "":
        raise ValidationError("Title must not be empty")
    return t


class AdminLifecycleManager:
    def __init__(self, ledger: Ledger) -> None:
        self._ledger: Ledger = ledger

    def create_drop(
        self,
        *,
        title: str,
        stock: int,
        claim_window_start: datetime,
        claim_window_end: datetime,
        description: str | None = None,
    ) -> DropRecord:
        start = to_naive_utc(claim_window_start)
        end = to_naive_utc(claim_window_end)
        try:
            clean_title = _validate_title(title)
            _validate_window(start, end)
            if stock <= 0:
                raise ValidationError("Stock must be greater than 0")
        except ValidationError:
            record_admin_mutation(operation="create", outcome="validation_error")
            raise

        drop_id = str(uuid4())

        def _work(db: Session) -> DropRecord:
            row = Drop(
                id=drop_id,
                title=clean_title,
                description=description or "",
                stock=stock,
                claim_window_start=start,
                claim_window_end=end,
                created_at=utcnow(),
            )
            db.add(row)
            db.flush()
            return DropRecord.from_row(row)

        record = self._ledger.run(drop_key(drop_id), _work)
        record_admin_mutation(operation="create", outcome="ok")
        logger.info("drop created drop_id=%s stock=%d", record.id, record.stock)
        return record

    def update_drop(self, drop_id: str, changes: DropUpdate) -> DropRecord:
        def _work(db: Session) -> DropRecord:
            row = queries.lock_drop(db, drop_id)

            start = (
                to_naive_utc(changes.claim_window_start)
                if changes.claim_window_start is not None
                else row.claim_window_start
            )
            end = (
                to_naive_utc(changes.claim_window_end)
                if changes.claim_window_end is not None
                else row.claim_window_end
            )
            if changes.claim_window_start is not None or changes.claim_window_end is not None:
                _validate_window(start, end)

            if changes.stock is not None:
                if changes.stock < 0:
                    raise ValidationError("Stock cannot be negative")
                issued = queries.issued_count(db, drop_id)
                if changes.stock < issued:
                    raise ValidationError(
                        f"Cannot reduce stock below current claims ({issued})"
                    )
                row.stock = changes.stock

            if changes.title is not None:
                row.title = _validate_title(changes.title)
            if changes.description is not None:
                row.description = changes.description
            row.claim_window_start = start
            row.claim_window_end = end
            db.flush()
            return DropRecord.from_row(row)

        try:
            record = self._ledger.run(drop_key(drop_id), _work)
        except DropSpotError as exc:
            record_admin_mutation(operation="update", outcome=exc.code)
            raise
        record_admin_mutation(operation="update", outcome="ok")
        logger.info("drop updated drop_id=%s stock=%d", record.id, record.stock)
        return record

    def delete_drop(self, drop_id: str) -> bool:
        def _work(db: Session) -> bool:
            row = queries.lock_drop(db, drop_id)
            issued = queries.issued_count(db, drop_id)
            if issued > 0:
                raise ValidationError(
                    f"Cannot delete drop with active claims ({issued} claims)"
                )
            _ = db.execute(delete(WaitlistEntry).where(WaitlistEntry.drop_id == drop_id))
            db.delete(row)
            return True

        try:
            deleted = self._ledger.run(drop_key(drop_id), _work)
        except DropSpotError as exc:
            record_admin_mutation(operation="delete", outcome=exc.code)
            raise
        record_admin_mutation(operation="delete", outcome="ok")
        logger.info("drop deleted drop_id=%s", drop_id)
        return deleted

    def list_drops(self, *, now: datetime | None = None) -> list[DropStats]:
        ts = to_naive_utc(now) if now is not None else utcnow()

        def _work(db: Session) -> list[DropStats]:
            rows = db.execute(
                select(Drop).order_by(Drop.created_at.desc(), Drop.id.asc())
            ).scalars().all()
            return [queries.drop_stats(db, r, ts) for r in rows]

        return self._ledger.view(_work)
