from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
import time
from dataclasses import dataclass
from typing import cast


_PBKDF2_ALG = "pbkdf2_sha256"
_PBKDF2_HASH_NAME = "sha256"
_PBKDF2_ITERATIONS = 200_000
_PBKDF2_SALT_BYTES = 16

PASSWORD_MIN_LENGTH = 6


@dataclass(frozen=True)
class TokenIdentity:
    user_id: str
    role: str


def _b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64url_decode(data: str) -> bytes:
    if data == "":
        raise ValueError("invalid base64 input")
    padded = data + "=" * ((4 - (len(data) % 4)) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (ValueError, UnicodeEncodeError) as exc:
        raise ValueError("invalid base64 input") from exc


def hash_password(password: str) -> str:
    if password == "":
        raise ValueError("password must be a non-empty string")

    salt = secrets.token_bytes(_PBKDF2_SALT_BYTES)
    dk = hashlib.pbkdf2_hmac(
        _PBKDF2_HASH_NAME,
        password.encode("utf-8"),
        salt,
        _PBKDF2_ITERATIONS,
        dklen=32,
    )
    return f"{_PBKDF2_ALG}${_PBKDF2_ITERATIONS}${_b64url_encode(salt)}${_b64url_encode(dk)}"


def verify_password(password: str, stored: str) -> bool:
    try:
        alg, iterations_s, salt_s, hash_s = stored.split("$", 3)
        iterations = int(iterations_s)
        salt = _b64url_decode(salt_s)
        expected = _b64url_decode(hash_s)
    except ValueError:
        return False
    if alg != _PBKDF2_ALG or iterations <= 0:
        return False

    actual = hashlib.pbkdf2_hmac(
        _PBKDF2_HASH_NAME,
        password.encode("utf-8"),
        salt,
        iterations,
        dklen=len(expected),
    )
    return hmac.compare_digest(actual, expected)


def validate_password_policy(password: str) -> None:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"password must be at least {PASSWORD_MIN_LENGTH} characters")
    if any(ch.isspace() for ch in password):
        raise ValueError("password must not contain whitespace")
    has_alpha = any(ch.isalpha() for ch in password)
    has_digit = any(ch.isdigit() for ch in password)
    if not (has_alpha and has_digit):
        raise ValueError("password must contain letters and numbers")


def _json_b64url(obj: dict[str, object]) -> str:
    raw = json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=True).encode("utf-8")
    return _b64url_encode(raw)


def _json_loads_dict(data: bytes) -> dict[str, object]:
    try:
        obj = cast(object, json.loads(data.decode("utf-8")))
    except ValueError as exc:
        raise ValueError("invalid token") from exc
    if not isinstance(obj, dict):
        raise ValueError("invalid token")
    return cast(dict[str, object], obj)


def _sign_hs256(message: bytes, secret: str) -> bytes:
    if secret == "":
        raise ValueError("secret must be a non-empty string")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def encode_access_token(payload: dict[str, object], secret: str, expires_in_seconds: int) -> str:
    if expires_in_seconds <= 0:
        raise ValueError("expires_in_seconds must be a positive int")

    body: dict[str, object] = dict(payload)
    body["exp"] = int(time.time()) + expires_in_seconds

    header_b64 = _json_b64url({"alg": "HS256", "typ": "JWT"})
    payload_b64 = _json_b64url(body)
    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    sig = _sign_hs256(signing_input, secret)
    return f"{header_b64}.{payload_b64}.{_b64url_encode(sig)}"


def decode_access_token(token: str, secret: str) -> dict[str, object]:
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError("invalid token")
    header_b64, payload_b64, sig_b64 = parts

    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    expected_sig = _sign_hs256(signing_input, secret)
    if not hmac.compare_digest(_b64url_decode(sig_b64), expected_sig):
        raise ValueError("invalid token")

    header = _json_loads_dict(_b64url_decode(header_b64))
    if header.get("alg") != "HS256":
        raise ValueError("invalid token")

    payload = _json_loads_dict(_b64url_decode(payload_b64))
    exp = payload.get("exp")
    if not isinstance(exp, int):
        raise ValueError("invalid token")
    if int(time.time()) >= exp:
        raise ValueError("token expired")
    return payload


def issue_token(identity: TokenIdentity, *, secret: str, expires_in_seconds: int) -> str:
    return encode_access_token(
        {"sub": identity.user_id, "role": identity.role},
        secret=secret,
        expires_in_seconds=expires_in_seconds,
    )


def identity_from_token(token: str, *, secret: str) -> TokenIdentity:
    payload = decode_access_token(token, secret)
    sub = payload.get("sub")
    role = payload.get("role")
    if not isinstance(sub, str) or sub == "":
        raise ValueError("invalid token")
    return TokenIdentity(user_id=sub, role=role if isinstance(role, str) else "user")
