# pyright: reportMissingImports=false

from __future__ import annotations

from functools import lru_cache
import json
from typing import ClassVar, cast

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings with local dev defaults."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=None,
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "dropspot"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    env: str = "dev"

    cors_allowed_origins: list[str] = Field(default_factory=list)
    trusted_hosts: list[str] = Field(default_factory=list)

    # Auth (JWT) settings
    auth_access_token_secret: str = "dev-secret-change-me"
    auth_access_token_ttl_seconds: int = 7 * 24 * 3600

    auth_rate_limit_enabled: bool = True
    auth_rate_limit_max_failures: int = 5
    auth_rate_limit_window_seconds: int = 300

    # Waitlist joins/leaves inside this window count as rapid actions for priority scoring.
    rapid_action_window_seconds: int = 60

    # Overrides the git-derived seed for the priority coefficients.
    priority_seed: str | None = None

    claim_code_max_attempts: int = 10
    ledger_max_retries: int = 3

    # Prefer DATABASE_URL when provided; otherwise construct from POSTGRES_* vars.
    database_url: str | None = None
    postgres_db: str = "dropspot"
    postgres_user: str = "dropspot"
    postgres_password: str = "dropspot"
    postgres_host: str = "localhost"
    postgres_port: int = 5432

    @field_validator("cors_allowed_origins", "trusted_hosts", mode="before")
    @classmethod
    def _parse_listish_env(cls, v: object) -> list[str]:
        if v is None:
            return []
        if isinstance(v, list):
            v_list = cast(list[object], v)
            return [str(x).strip() for x in v_list if str(x).strip()]
        if isinstance(v, str):
            raw = v.strip()
            if raw == "":
                return []
            if raw.lstrip().startswith("["):
                try:
                    parsed: object = cast(object, json.loads(raw))
                except ValueError:
                    parsed = None
                if isinstance(parsed, list):
                    parsed_list = cast(list[object], parsed)
                    return [str(x).strip() for x in parsed_list if str(x).strip()]
            parts: list[str] = []
            for chunk in raw.replace("\n", ",").replace("\t", ",").split(","):
                s = chunk.strip()
                if s:
                    parts.append(s)
            return parts
        return [str(v).strip()] if str(v).strip() else []

    @field_validator("priority_seed", mode="before")
    @classmethod
    def _blank_seed_is_none(cls, v: object) -> object:
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    @property
    def sqlalchemy_database_uri(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.sqlalchemy_database_uri.startswith("sqlite")

    def _is_prod_env(self) -> bool:
        return self.env.strip().lower() in ("prod", "production")

    @model_validator(mode="after")
    def _validate_limits(self) -> "Settings":
        if self.claim_code_max_attempts <= 0:
            raise ValueError("CLAIM_CODE_MAX_ATTEMPTS must be > 0")
        if self.ledger_max_retries < 0:
            raise ValueError("LEDGER_MAX_RETRIES must be >= 0")
        if self.rapid_action_window_seconds < 0:
            raise ValueError("RAPID_ACTION_WINDOW_SECONDS must be >= 0")
        return self

    @model_validator(mode="after")
    def _validate_prod_config(self) -> "Settings":
        if not self._is_prod_env():
            return self

        problems: list[str] = []

        if self.auth_access_token_secret.strip() in ("", "dev-secret-change-me"):
            problems.append(
                "AUTH_ACCESS_TOKEN_SECRET must be set in production (cannot use default 'dev-secret-change-me')."
            )

        if self.is_sqlite:
            problems.append(
                "SQLite is not supported in production; point DATABASE_URL at PostgreSQL."
            )

        if problems:
            details = "\n".join(f"- {p}" for p in problems)
            raise ValueError(
                f"Production settings validation failed (ENV={self.env!r}). Fix the following before starting the server:\n"
                + details
            )

        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
