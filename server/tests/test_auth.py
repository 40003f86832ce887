from __future__ import annotations

import uuid
from typing import cast

from fastapi.testclient import TestClient

from dropspot.core.config import settings
from dropspot.main import app


def _random_email() -> str:
    return f"test-{uuid.uuid4().hex}@example.com"


def _signup(client: TestClient, email: str, password: str = "password123") -> dict[str, object]:
    resp = client.post("/api/v1/auth/signup", json={"email": email, "password": password})
    assert resp.status_code == 201, resp.text
    return cast(dict[str, object], resp.json())


def test_me_unauthenticated_returns_401() -> None:
    with TestClient(app) as client:
        resp = client.get("/api/v1/auth/me")
        assert resp.status_code == 401, resp.text


def test_signup_returns_token_and_me_works() -> None:
    email = _random_email()
    with TestClient(app) as client:
        body = _signup(client, email)
        token = body["access_token"]
        assert isinstance(token, str) and token
        assert body["token_type"] == "bearer"

        me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200, me.text
        me_body = cast(dict[str, object], me.json())
        assert me_body["email"] == email
        assert me_body["role"] == "user"


def test_signup_normalizes_email_and_rejects_duplicates() -> None:
    email = _random_email()
    with TestClient(app) as client:
        _ = _signup(client, email.upper())
        dup = client.post("/api/v1/auth/signup", json={"email": email, "password": "password123"})
        assert dup.status_code == 409, dup.text


def test_signup_rejects_bad_input() -> None:
    with TestClient(app) as client:
        bad_email = client.post("/api/v1/auth/signup", json={"email": "nope", "password": "password123"})
        assert bad_email.status_code == 400, bad_email.text

        weak = client.post("/api/v1/auth/signup", json={"email": _random_email(), "password": "abcdefgh"})
        assert weak.status_code == 400, weak.text


def test_login_success_and_failure() -> None:
    email = _random_email()
    with TestClient(app) as client:
        _ = _signup(client, email)

        ok = client.post("/api/v1/auth/login", json={"email": email, "password": "password123"})
        assert ok.status_code == 200, ok.text

        bad = client.post("/api/v1/auth/login", json={"email": email, "password": "wrong12345"})
        assert bad.status_code == 401, bad.text
        assert cast(dict[str, object], bad.json())["detail"] == "Invalid email or password"


def test_login_rate_limited_after_repeated_failures() -> None:
    email = _random_email()
    old = (settings.auth_rate_limit_enabled, settings.auth_rate_limit_max_failures)
    settings.auth_rate_limit_enabled = True
    settings.auth_rate_limit_max_failures = 2
    try:
        with TestClient(app) as client:
            _ = _signup(client, email)
            for _ in range(2):
                resp = client.post("/api/v1/auth/login", json={"email": email, "password": "wrong12345"})
                assert resp.status_code == 401, resp.text

            blocked = client.post("/api/v1/auth/login", json={"email": email, "password": "password123"})
            assert blocked.status_code == 429, blocked.text
            assert int(blocked.headers["Retry-After"]) > 0
    finally:
        settings.auth_rate_limit_enabled, settings.auth_rate_limit_max_failures = old


def test_invalid_token_rejected() -> None:
    with TestClient(app) as client:
        resp = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not.a.token"})
        assert resp.status_code == 401, resp.text
