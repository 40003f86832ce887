from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum


class DropStatus(str, Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    CLOSED = "closed"


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def is_window_open(start: datetime, end: datetime, now: datetime) -> bool:
    return start <= now <= end


def drop_status(start: datetime, end: datetime, now: datetime) -> DropStatus:
    if now < start:
        return DropStatus.UPCOMING
    if now > end:
        return DropStatus.CLOSED
    return DropStatus.ACTIVE


def remaining_stock(stock: int, issued: int) -> int:
    return max(0, stock - issued)
