# pyright: reportUnknownMemberType=false
# pyright: reportUnknownVariableType=false

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import timedelta
from typing import cast

from fastapi.testclient import TestClient

from dropspot.api.deps import get_waitlist_ledger
from dropspot.domain.lifecycle import utcnow
from dropspot.domain.priority import PriorityCoefficients
from dropspot.main import app
from dropspot.services.ledger import get_ledger
from dropspot.services.waitlist import WaitlistLedger


MakeUser = Callable[..., str]
MakeDrop = Callable[..., str]

Json = dict[str, object]


def _random_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex}@example.com"


def _auth(client: TestClient, *, email: str | None = None) -> dict[str, str]:
    resp = client.post(
        "/api/v1/auth/signup",
        json={"email": email or _random_email(), "password": "password123"},
    )
    assert resp.status_code == 201, resp.text
    token = cast(Json, resp.json())["access_token"]
    return {"Authorization": f"Bearer {token}"}


def _admin_auth(client: TestClient, make_user: MakeUser) -> dict[str, str]:
    email = _random_email("admin")
    _ = make_user(email=email, password="adminpassword1", role="admin")
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": "adminpassword1"})
    assert resp.status_code == 200, resp.text
    token = cast(Json, resp.json())["access_token"]
    return {"Authorization": f"Bearer {token}"}


def _create_drop(client: TestClient, admin: dict[str, str], *, stock: int, starts_in: timedelta) -> str:
    start = utcnow() + starts_in
    resp = client.post(
        "/api/v1/admin/drops",
        headers=admin,
        json={
            "title": "Limited Sneakers",
            "description": "numbered pairs",
            "stock": stock,
            "claim_window_start": start.isoformat(),
            "claim_window_end": (start + timedelta(days=1)).isoformat(),
        },
    )
    assert resp.status_code == 201, resp.text
    return cast(str, cast(Json, resp.json())["id"])


def test_join_then_claim_flow(make_user: MakeUser) -> None:
    with TestClient(app) as client:
        admin = _admin_auth(client, make_user)
        drop_id = _create_drop(client, admin, stock=3, starts_in=timedelta(hours=-1))
        user = _auth(client)

        listed = client.get("/api/v1/drops")
        assert listed.status_code == 200, listed.text
        items = cast(list[Json], cast(Json, listed.json())["items"])
        assert [i["id"] for i in items] == [drop_id]
        assert items[0]["status"] == "active"
        assert items[0]["remaining_stock"] == 3

        joined = client.post(f"/api/v1/drops/{drop_id}/join", headers=user)
        assert joined.status_code == 201, joined.text
        body = cast(Json, joined.json())
        assert body["position"] == 1
        assert body["is_new"] is True

        again = client.post(f"/api/v1/drops/{drop_id}/join", headers=user)
        assert again.status_code == 200, again.text
        assert cast(Json, again.json())["is_new"] is False

        detail = cast(Json, client.get(f"/api/v1/drops/{drop_id}", headers=user).json())
        assert detail["user_in_waitlist"] is True
        assert detail["waitlist_position"] == 1

        claimed = client.post(f"/api/v1/drops/{drop_id}/claim", headers=user)
        assert claimed.status_code == 201, claimed.text
        claim = cast(Json, cast(Json, claimed.json())["claim"])
        code = cast(str, claim["claim_code"])

        repeat = client.post(f"/api/v1/drops/{drop_id}/claim", headers=user)
        assert repeat.status_code == 200, repeat.text
        assert cast(Json, cast(Json, repeat.json())["claim"])["claim_code"] == code

        lookup = client.get(f"/api/v1/claims/{code.lower()}")
        assert lookup.status_code == 200, lookup.text
        assert cast(Json, lookup.json())["drop_id"] == drop_id

        mine = cast(Json, client.get("/api/v1/claims/me", headers=user).json())
        assert [c["claim_code"] for c in cast(list[Json], mine["items"])] == [code]

        waitlist_me = cast(Json, client.get("/api/v1/waitlist/me", headers=user).json())
        assert waitlist_me["items"] == []

        after = cast(Json, client.get(f"/api/v1/drops/{drop_id}", headers=user).json())
        assert after["user_has_claimed"] is True
        assert after["remaining_stock"] == 2


def test_claim_errors_carry_codes(make_user: MakeUser) -> None:
    with TestClient(app) as client:
        admin = _admin_auth(client, make_user)
        upcoming = _create_drop(client, admin, stock=1, starts_in=timedelta(days=1))
        active = _create_drop(client, admin, stock=1, starts_in=timedelta(hours=-1))
        user = _auth(client)
        other = _auth(client)

        no_waitlist = client.post(f"/api/v1/drops/{active}/claim", headers=user)
        assert no_waitlist.status_code == 403, no_waitlist.text
        assert cast(Json, no_waitlist.json())["code"] == "waitlist_required"

        assert client.post(f"/api/v1/drops/{upcoming}/join", headers=user).status_code == 201
        early = client.post(f"/api/v1/drops/{upcoming}/claim", headers=user)
        assert early.status_code == 400, early.text
        early_body = cast(Json, early.json())
        assert early_body["code"] == "window_not_open"
        assert early_body["reason"] == "not_started"

        assert client.post(f"/api/v1/drops/{active}/join", headers=user).status_code == 201
        assert client.post(f"/api/v1/drops/{active}/join", headers=other).status_code == 201
        assert client.post(f"/api/v1/drops/{active}/claim", headers=user).status_code == 201
        sold_out = client.post(f"/api/v1/drops/{active}/claim", headers=other)
        assert sold_out.status_code == 409, sold_out.text
        assert cast(Json, sold_out.json())["code"] == "sold_out"

        missing = client.post("/api/v1/drops/does-not-exist/join", headers=user)
        assert missing.status_code == 404, missing.text
        assert cast(Json, missing.json())["code"] == "not_found"


def test_leave_and_waitlist_listing(make_user: MakeUser) -> None:
    with TestClient(app) as client:
        admin = _admin_auth(client, make_user)
        drop_id = _create_drop(client, admin, stock=5, starts_in=timedelta(hours=1))
        first, second = _auth(client), _auth(client)
        assert client.post(f"/api/v1/drops/{drop_id}/join", headers=first).status_code == 201
        assert client.post(f"/api/v1/drops/{drop_id}/join", headers=second).status_code == 201

        listing = cast(Json, client.get(f"/api/v1/drops/{drop_id}/waitlist").json())
        assert listing["total_waitlist"] == 2
        entries = cast(list[Json], listing["entries"])
        assert [e["position"] for e in entries] == [1, 2]

        left = client.post(f"/api/v1/drops/{drop_id}/leave", headers=first)
        assert left.status_code == 200, left.text
        assert cast(Json, left.json())["removed"] is True
        left_again = client.post(f"/api/v1/drops/{drop_id}/leave", headers=first)
        assert cast(Json, left_again.json())["removed"] is False

        mine = cast(Json, client.get("/api/v1/waitlist/me", headers=second).json())
        items = cast(list[Json], mine["items"])
        assert len(items) == 1
        assert items[0]["position"] == 1
        assert items[0]["total_waitlist"] == 1


def test_admin_routes_require_admin(make_user: MakeUser) -> None:
    with TestClient(app) as client:
        user = _auth(client)
        assert client.get("/api/v1/admin/drops").status_code == 401
        assert client.get("/api/v1/admin/drops", headers=user).status_code == 403


def test_admin_update_delete_and_purge(make_user: MakeUser) -> None:
    with TestClient(app) as client:
        admin = _admin_auth(client, make_user)
        drop_id = _create_drop(client, admin, stock=2, starts_in=timedelta(hours=-1))
        user = _auth(client)
        assert client.post(f"/api/v1/drops/{drop_id}/join", headers=user).status_code == 201
        assert client.post(f"/api/v1/drops/{drop_id}/claim", headers=user).status_code == 201

        shrink = client.put(f"/api/v1/admin/drops/{drop_id}", headers=admin, json={"stock": 0})
        assert shrink.status_code == 400, shrink.text
        assert "Cannot reduce stock below current claims (1)" in cast(str, cast(Json, shrink.json())["detail"])

        renamed = client.put(f"/api/v1/admin/drops/{drop_id}", headers=admin, json={"title": "Renamed drop"})
        assert renamed.status_code == 200, renamed.text
        assert cast(Json, renamed.json())["title"] == "Renamed drop"
        assert cast(Json, renamed.json())["stock"] == 2

        blocked = client.delete(f"/api/v1/admin/drops/{drop_id}", headers=admin)
        assert blocked.status_code == 400, blocked.text

        claims = cast(Json, client.get(f"/api/v1/admin/drops/{drop_id}/claims", headers=admin).json())
        assert claims["total_claims"] == 1
        assert claims["remaining_stock"] == 1
        claim_id = cast(list[Json], claims["claims"])[0]["id"]

        purged = client.delete(f"/api/v1/admin/claims/{claim_id}", headers=admin)
        assert purged.status_code == 200, purged.text

        deleted = client.delete(f"/api/v1/admin/drops/{drop_id}", headers=admin)
        assert deleted.status_code == 200, deleted.text
        assert client.get(f"/api/v1/drops/{drop_id}").status_code == 404


def test_admin_create_rejects_invalid_window(make_user: MakeUser) -> None:
    with TestClient(app) as client:
        admin = _admin_auth(client, make_user)
        start = utcnow()
        resp = client.post(
            "/api/v1/admin/drops",
            headers=admin,
            json={
                "title": "Backwards",
                "stock": 1,
                "claim_window_start": start.isoformat(),
                "claim_window_end": (start - timedelta(hours=1)).isoformat(),
            },
        )
        assert resp.status_code == 400, resp.text
        assert cast(Json, resp.json())["code"] == "validation_error"


def _deterministic_waitlist() -> WaitlistLedger:
    return WaitlistLedger(
        get_ledger(),
        coefficients=PriorityCoefficients(a=7, b=13, c=3),
        latency_source=lambda: 0,
    )


def _join_score(client: TestClient, drop_id: str, headers: dict[str, str]) -> int:
    resp = client.post(f"/api/v1/drops/{drop_id}/join", headers=headers)
    assert resp.status_code == 201, resp.text
    entry = cast(Json, cast(Json, resp.json())["entry"])
    return cast(int, entry["priority_score"])


def test_failed_join_does_not_count_as_rapid_action(make_user: MakeUser) -> None:
    app.dependency_overrides[get_waitlist_ledger] = _deterministic_waitlist
    try:
        with TestClient(app) as client:
            admin = _admin_auth(client, make_user)
            drop_id = _create_drop(client, admin, stock=5, starts_in=timedelta(hours=-1))
            clean, retried = _auth(client), _auth(client)

            missing = client.post("/api/v1/drops/does-not-exist/join", headers=retried)
            assert missing.status_code == 404, missing.text
            missing_leave = client.post("/api/v1/drops/does-not-exist/leave", headers=retried)
            assert missing_leave.status_code == 404, missing_leave.text

            assert _join_score(client, drop_id, retried) == _join_score(client, drop_id, clean) == 1000
    finally:
        app.dependency_overrides.pop(get_waitlist_ledger, None)


def test_successful_waitlist_changes_lower_next_score(make_user: MakeUser) -> None:
    app.dependency_overrides[get_waitlist_ledger] = _deterministic_waitlist
    try:
        with TestClient(app) as client:
            admin = _admin_auth(client, make_user)
            first = _create_drop(client, admin, stock=5, starts_in=timedelta(hours=-1))
            second = _create_drop(client, admin, stock=5, starts_in=timedelta(hours=-1))
            third = _create_drop(client, admin, stock=5, starts_in=timedelta(hours=-1))
            user = _auth(client)

            assert _join_score(client, first, user) == 1000
            again = client.post(f"/api/v1/drops/{first}/join", headers=user)
            assert again.status_code == 200, again.text
            assert _join_score(client, second, user) == 1000 - 1

            left = client.post(f"/api/v1/drops/{second}/leave", headers=user)
            assert cast(Json, left.json())["removed"] is True
            assert _join_score(client, third, user) == 1000 - 3 % 3
    finally:
        app.dependency_overrides.pop(get_waitlist_ledger, None)
