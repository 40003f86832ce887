from __future__ import annotations

import pytest

from dropspot.core.config import Settings


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ["ENV", "AUTH_ACCESS_TOKEN_SECRET", "DATABASE_URL", "PRIORITY_SEED"]:
        monkeypatch.delenv(key, raising=False)


def test_prod_default_secret_and_sqlite_fail(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./prod.sqlite3")

    with pytest.raises(Exception) as excinfo:
        _ = Settings()
    msg = str(excinfo.value)
    assert "AUTH_ACCESS_TOKEN_SECRET" in msg
    assert "SQLite" in msg


def test_prod_with_secret_and_postgres_ok(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("AUTH_ACCESS_TOKEN_SECRET", "auth-secret-set-in-prod-0123456789")

    s = Settings()
    assert s.sqlalchemy_database_uri.startswith("postgresql+psycopg://")
    assert s.is_sqlite is False


def test_list_env_parsing(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("TRUSTED_HOSTS", '["a.example.com", " b.example.com "]')
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", '["https://x.example.com"]')

    s = Settings()
    assert s.trusted_hosts == ["a.example.com", "b.example.com"]
    assert s.cors_allowed_origins == ["https://x.example.com"]


def test_blank_priority_seed_is_none(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("PRIORITY_SEED", "   ")
    assert Settings().priority_seed is None


def test_limits_validated(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("CLAIM_CODE_MAX_ATTEMPTS", "0")
    with pytest.raises(Exception):
        _ = Settings()
