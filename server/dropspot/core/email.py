from __future__ import annotations


def normalize_email(email: str) -> str:
    return email.strip().lower()


def looks_like_email(email: str) -> bool:
    local, sep, domain = email.partition("@")
    if sep == "" or local == "" or "." not in domain:
        return False
    return not domain.startswith(".") and not domain.endswith(".")
