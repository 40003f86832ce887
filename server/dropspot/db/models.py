# pyright: reportMissingImports=false
# pyright: reportDeprecated=false
# pyright: reportUnknownVariableType=false
from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dropspot.db.base import Base


def _uuid_str() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class User(Base):
    __tablename__: str = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="user", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=_utcnow, nullable=False)


class Drop(Base):
    __tablename__: str = "drops"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_drops_stock_ge_0"),
        CheckConstraint(
            "claim_window_end > claim_window_start",
            name="ck_drops_window_order",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text(), default="", nullable=False)
    stock: Mapped[int] = mapped_column(Integer(), nullable=False)
    claim_window_start: Mapped[datetime] = mapped_column(DateTime(), index=True, nullable=False)
    claim_window_end: Mapped[datetime] = mapped_column(DateTime(), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=_utcnow, nullable=False)

    waitlist_entries: Mapped[list["WaitlistEntry"]] = relationship(
        "WaitlistEntry",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class WaitlistEntry(Base):
    __tablename__: str = "waitlist_entries"
    __table_args__ = (
        UniqueConstraint("user_id", "drop_id", name="uq_waitlist_entries_user_drop"),
        Index(
            "ix_waitlist_entries_drop_rank",
            "drop_id",
            "priority_score",
            "joined_at",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    drop_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("drops.id", ondelete="CASCADE"),
        nullable=False,
    )
    priority_score: Mapped[int] = mapped_column(Integer(), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(), default=_utcnow, nullable=False)


class Claim(Base):
    __tablename__: str = "claims"
    __table_args__ = (
        UniqueConstraint("user_id", "drop_id", name="uq_claims_user_drop"),
        UniqueConstraint("claim_code", name="uq_claims_claim_code"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid_str)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    # No cascade: outstanding claims block drop deletion.
    drop_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("drops.id", ondelete="RESTRICT"),
        index=True,
        nullable=False,
    )
    claim_code: Mapped[str] = mapped_column(String(14), nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(DateTime(), default=_utcnow, nullable=False)


class ActionRate(Base):
    __tablename__: str = "action_rates"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    count: Mapped[int] = mapped_column(Integer(), default=0, nullable=False)
    reset_at: Mapped[datetime] = mapped_column(DateTime(), index=True, nullable=False)
