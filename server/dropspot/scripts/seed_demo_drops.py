from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import timedelta
from typing import cast

from dropspot.core.config import settings
from dropspot.core.logging import configure_logging
from dropspot.domain.lifecycle import utcnow
from dropspot.domain.types import DropRecord
from dropspot.services.admin import AdminLifecycleManager
from dropspot.services.ledger import get_ledger


@dataclass(frozen=True)
class DemoDrop:
    title: str
    description: str
    stock: int
    starts_in: timedelta
    lasts: timedelta


DEMO_DROPS: tuple[DemoDrop, ...] = (
    DemoDrop(
        title="Limited Edition Sneakers",
        description="Exclusive colorway, numbered pairs.",
        stock=10,
        starts_in=timedelta(hours=-1),
        lasts=timedelta(days=1),
    ),
    DemoDrop(
        title="Vinyl Reissue",
        description="Remastered 180g pressing.",
        stock=50,
        starts_in=timedelta(days=2),
        lasts=timedelta(days=3),
    ),
    DemoDrop(
        title="Festival Early Access",
        description="Early entry wristbands.",
        stock=5,
        starts_in=timedelta(days=-5),
        lasts=timedelta(days=2),
    ),
)


def seed_demo_drops(manager: AdminLifecycleManager) -> list[DropRecord]:
    """Create one active, one upcoming and one closed drop relative to now."""
    now = utcnow()
    created: list[DropRecord] = []
    for d in DEMO_DROPS:
        start = now + d.starts_in
        created.append(
            manager.create_drop(
                title=d.title,
                description=d.description,
                stock=d.stock,
                claim_window_start=start,
                claim_window_end=start + d.lasts,
            )
        )
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="Insert demo drops for local development.")
    _ = parser.add_argument("--force", action="store_true", help="Seed even when drops already exist")
    args = parser.parse_args()

    configure_logging(settings.log_level)
    manager = AdminLifecycleManager(get_ledger())
    if manager.list_drops() and not cast(bool, args.force):
        raise SystemExit("drops already present; pass --force to seed anyway")

    for record in seed_demo_drops(manager):
        print(f"drop_id={record.id} title={record.title!r} stock={record.stock}")


if __name__ == "__main__":
    main()
