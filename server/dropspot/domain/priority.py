"""
Waitlist priority scoring.

score = max(0, 1000 + (signup_latency_ms % A) + (account_age_days % B) - (rapid_actions % C))

A, B and C are small coefficients derived from a per-deployment seed. The
seed only has to be stable for the lifetime of one deployment, so it is taken
from project identity (git remote + first commit) and cached per process.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import subprocess
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache

from dropspot.core.config import settings


logger = logging.getLogger(__name__)

BASE_SCORE = 1000

PROJECT_START_STAMP = "202501171430"
FALLBACK_SEED_MATERIAL = "dropspot-fallback-seed"


@dataclass(frozen=True)
class PriorityCoefficients:
    a: int
    b: int
    c: int


def derive_seed(material: str) -> str:
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:12]


def coefficients_from_seed(seed: str) -> PriorityCoefficients:
    if len(seed) < 6:
        raise ValueError("seed must have at least 6 hex characters")
    return PriorityCoefficients(
        a=7 + int(seed[0:2], 16) % 5,
        b=13 + int(seed[2:4], 16) % 7,
        c=3 + int(seed[4:6], 16) % 3,
    )


def _git(*args: str) -> str:
    out = subprocess.run(
        ["git", *args],
        capture_output=True,
        text=True,
        timeout=5,
        check=True,
    )
    return out.stdout


def project_seed_material() -> str:
    try:
        remote = _git("config", "--get", "remote.origin.url").strip()
        first_commit = _git("log", "--reverse", "--format=%ct").splitlines()[0].strip()
    except (OSError, subprocess.SubprocessError, IndexError):
        logger.warning("could not derive priority seed from git, using fallback")
        return FALLBACK_SEED_MATERIAL
    return f"{remote}|{first_commit}|{PROJECT_START_STAMP}"


@lru_cache
def get_priority_coefficients() -> PriorityCoefficients:
    if settings.priority_seed is not None:
        seed = derive_seed(settings.priority_seed)
    else:
        seed = derive_seed(project_seed_material())
    coeffs = coefficients_from_seed(seed)
    logger.info("priority coefficients ready seed=%s a=%d b=%d c=%d", seed, coeffs.a, coeffs.b, coeffs.c)
    return coeffs


def score(
    signup_latency_ms: int,
    account_age_days: int,
    rapid_actions: int,
    coefficients: PriorityCoefficients,
) -> int:
    raw = (
        BASE_SCORE
        + (signup_latency_ms % coefficients.a)
        + (account_age_days % coefficients.b)
        - (rapid_actions % coefficients.c)
    )
    return max(0, raw)


def account_age_days(created_at: datetime, now: datetime) -> int:
    delta = now - created_at
    if delta.total_seconds() <= 0:
        return 0
    return delta.days


def placeholder_signup_latency_ms() -> int:
    # No real signup latency is measured yet; a random jitter stands in for it.
    return secrets.randbelow(1000)
