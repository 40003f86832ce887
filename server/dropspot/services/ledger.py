"""
Unit-of-work boundary for every mutation of drop-scoped state.

`Ledger.run(key, work)` executes `work(session)` while holding an in-process
lock for `key`, then commits. Work functions additionally lock the drop row
(`SELECT ... FOR UPDATE`), so on PostgreSQL separate server processes
serialize on the same drop as well. Unique-constraint and serialization
failures roll the whole unit back and re-run it from scratch: every work
function re-reads its preconditions, so a retry either observes the winning
row (idempotent outcome) or fails with a domain error.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from dropspot.core.config import settings
from dropspot.core.errors import DropSpotError, StorageError
from dropspot.db.session import SessionLocal


logger = logging.getLogger(__name__)

T = TypeVar("T")


def drop_key(drop_id: str) -> str:
    return f"drop:{drop_id}"


@dataclass
class _LockSlot:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class Ledger:
    def __init__(self, session_factory: Callable[[], Session], *, max_retries: int = 3) -> None:
        self._session_factory: Callable[[], Session] = session_factory
        self._max_retries: int = max(0, int(max_retries))
        self._guard: threading.Lock = threading.Lock()
        self._slots: dict[str, _LockSlot] = {}

    @contextmanager
    def _hold(self, key: str) -> Iterator[None]:
        with self._guard:
            slot = self._slots.get(key)
            if slot is None:
                slot = _LockSlot()
                self._slots[key] = slot
            slot.holders += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._guard:
                slot.holders -= 1
                if slot.holders == 0:
                    _ = self._slots.pop(key, None)

    def run(self, key: str, work: Callable[[Session], T]) -> T:
        attempt = 0
        while True:
            with self._hold(key):
                db = self._session_factory()
                try:
                    result = work(db)
                    db.commit()
                    return result
                except DropSpotError:
                    db.rollback()
                    raise
                except (IntegrityError, OperationalError) as exc:
                    db.rollback()
                    if attempt >= self._max_retries:
                        raise StorageError(
                            f"unit of work {key!r} failed after {attempt + 1} attempts"
                        ) from exc
                    attempt += 1
                    logger.warning(
                        "unit of work conflict key=%s attempt=%d error=%s",
                        key,
                        attempt,
                        type(exc).__name__,
                    )
                except SQLAlchemyError as exc:
                    db.rollback()
                    raise StorageError(f"unit of work {key!r} failed") from exc
                finally:
                    db.close()

    def view(self, work: Callable[[Session], T]) -> T:
        """Run a read-only query outside any drop lock."""
        db = self._session_factory()
        try:
            return work(db)
        except SQLAlchemyError as exc:
            raise StorageError("read failed") from exc
        finally:
            db.close()


@lru_cache
def get_ledger() -> Ledger:
    return Ledger(SessionLocal, max_retries=settings.ledger_max_retries)
