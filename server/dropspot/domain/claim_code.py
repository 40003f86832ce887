from __future__ import annotations

import re
import secrets


CLAIM_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CLAIM_CODE_GROUPS = 3
CLAIM_CODE_GROUP_LENGTH = 4

_CLAIM_CODE_RE = re.compile(r"^[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$")


def generate_claim_code() -> str:
    """Return a random `XXXX-XXXX-XXXX` code. Uniqueness is the caller's job."""
    groups = (
        "".join(secrets.choice(CLAIM_CODE_ALPHABET) for _ in range(CLAIM_CODE_GROUP_LENGTH))
        for _ in range(CLAIM_CODE_GROUPS)
    )
    return "-".join(groups)


def is_valid_claim_code(code: str) -> bool:
    return _CLAIM_CODE_RE.match(code) is not None


def normalize_claim_code(raw: str) -> str:
    return raw.strip().upper()
