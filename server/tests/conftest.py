# pyright: reportUnusedFunction=false
from __future__ import annotations

import os
import sys
import tempfile
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

_DB_PATH = Path(tempfile.gettempdir()) / f"dropspot-test-{uuid.uuid4().hex}.sqlite3"
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ.setdefault("PRIORITY_SEED", "dropspot-test-seed")
os.environ.setdefault("ENV", "test")


def _ensure_test_schema() -> None:
    from dropspot.db.base import Base
    from dropspot.db.session import engine

    Base.metadata.create_all(bind=engine)


_ensure_test_schema()


@pytest.fixture(autouse=True)
def _isolate_db() -> None:
    from dropspot.db.base import Base
    from dropspot.db.session import engine

    tables = list(Base.metadata.sorted_tables)
    if not tables:
        return

    with engine.begin() as conn:
        for t in reversed(tables):
            _ = conn.execute(t.delete())


MakeUser = Callable[..., str]
MakeDrop = Callable[..., str]


@pytest.fixture
def make_user() -> MakeUser:
    from dropspot.core.security import hash_password
    from dropspot.db.models import User
    from dropspot.db.session import SessionLocal
    from dropspot.domain.lifecycle import utcnow

    def _make(
        *,
        email: str | None = None,
        password: str = "password123",
        role: str = "user",
        created_at: datetime | None = None,
    ) -> str:
        with SessionLocal() as db:
            user = User(
                email=email or f"user-{uuid.uuid4().hex}@example.com",
                password_hash=hash_password(password),
                role=role,
                created_at=created_at or utcnow(),
            )
            db.add(user)
            db.commit()
            return user.id

    return _make


@pytest.fixture
def make_drop() -> MakeDrop:
    """Insert a drop directly, bypassing admin validation so past windows are allowed."""
    from dropspot.db.models import Drop
    from dropspot.db.session import SessionLocal
    from dropspot.domain.lifecycle import utcnow

    def _make(
        *,
        stock: int = 10,
        starts_in: timedelta = timedelta(hours=-1),
        lasts: timedelta = timedelta(days=1),
        title: str = "Test Drop",
    ) -> str:
        start = utcnow() + starts_in
        with SessionLocal() as db:
            drop = Drop(
                title=title,
                description="",
                stock=stock,
                claim_window_start=start,
                claim_window_end=start + lasts,
            )
            db.add(drop)
            db.commit()
            return drop.id

    return _make
