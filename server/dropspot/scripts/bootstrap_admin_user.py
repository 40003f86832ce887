from __future__ import annotations

import argparse
import os
import random
import secrets
import string
import sys
from typing import cast

from sqlalchemy import select
from sqlalchemy.orm import Session

from dropspot.core.email import looks_like_email, normalize_email
from dropspot.core.security import hash_password, validate_password_policy
from dropspot.db.models import User
from dropspot.db.session import SessionLocal


PASSWORD_ENV_VAR = "BOOTSTRAP_ADMIN_PASSWORD"
BOOTSTRAP_MIN_PASSWORD_LEN = 12

_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def validate_bootstrap_password(password: str) -> None:
    if len(password) < BOOTSTRAP_MIN_PASSWORD_LEN:
        raise ValueError(f"password must be at least {BOOTSTRAP_MIN_PASSWORD_LEN} characters")
    validate_password_policy(password)


def generate_random_password(length: int = 20) -> str:
    """Random letters and digits, with at least one of each."""
    if length < BOOTSTRAP_MIN_PASSWORD_LEN:
        raise ValueError("length too short")
    chars = [secrets.choice(string.ascii_letters), secrets.choice(string.digits)]
    chars.extend(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length - 2))
    random.SystemRandom().shuffle(chars)
    return "".join(chars)


def resolve_password(*, password_stdin: bool) -> tuple[str, bool]:
    """Return `(password, generated)`; stdin wins over the env var."""
    if password_stdin:
        pw = sys.stdin.read().rstrip("\r\n")
        if pw == "":
            raise ValueError("--password-stdin was provided but stdin was empty")
    else:
        pw = os.getenv(PASSWORD_ENV_VAR) or ""
    if pw == "":
        return generate_random_password(), True
    validate_bootstrap_password(pw)
    return pw, False


def bootstrap_admin_user(
    db: Session,
    *,
    email: str,
    password: str,
    reset_password: bool,
) -> tuple[User, str]:
    """Create an admin account, or promote an existing user to admin."""
    email_n = normalize_email(email)
    if not looks_like_email(email_n):
        raise ValueError(f"invalid email {email_n!r}")

    user = db.execute(select(User).where(User.email == email_n)).scalar_one_or_none()

    if user is None:
        validate_bootstrap_password(password)
        user = User(email=email_n, password_hash=hash_password(password), role="admin")
        db.add(user)
        db.flush()
        return user, "created"

    action = "updated" if user.role == "admin" else "promoted"
    user.role = "admin"
    if reset_password:
        validate_bootstrap_password(password)
        user.password_hash = hash_password(password)
    db.flush()
    return user, action


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Create or promote an admin user (idempotent). "
            "Password is read from env or stdin; otherwise a random one is generated."
        )
    )
    _ = parser.add_argument("--email", required=True, help="Admin email (will be normalized)")
    _ = parser.add_argument(
        "--password-stdin",
        action="store_true",
        help="Read password from stdin. Keeps plaintext out of shell history.",
    )
    _ = parser.add_argument(
        "--reset-password",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Reset the password of an existing user (default: false).",
    )
    return parser


def main() -> None:
    args = _build_parser().parse_args()

    email_n = normalize_email(cast(str, args.email))
    password_stdin = cast(bool, args.password_stdin)
    reset_password = cast(bool, args.reset_password)

    db = SessionLocal()
    try:
        existing = db.execute(select(User.id).where(User.email == email_n)).scalar_one_or_none()
        password, generated = "", False
        if existing is None or reset_password:
            password, generated = resolve_password(password_stdin=password_stdin)

        user, action = bootstrap_admin_user(
            db,
            email=email_n,
            password=password,
            reset_password=reset_password,
        )
        db.commit()
        print(f"action={action} user_id={user.id} email={user.email} role={user.role}")
        if generated:
            print("IMPORTANT: generated password printed once; please save it now")
            print(f"generated_password={password}")
    except Exception as exc:
        db.rollback()
        raise SystemExit(f"bootstrap_admin_user failed: {type(exc).__name__}: {exc}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
