from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from dropspot.domain.priority import (
    BASE_SCORE,
    PriorityCoefficients,
    account_age_days,
    coefficients_from_seed,
    derive_seed,
    score,
)


def test_seed_is_first_12_hex_of_sha256() -> None:
    seed = derive_seed("abc")
    assert seed == "ba7816bf8f01"
    assert len(seed) == 12


def test_coefficients_from_seed_bytes() -> None:
    # 0xba=186, 0x78=120, 0x16=22
    coeffs = coefficients_from_seed("ba7816bf8f01")
    assert coeffs == PriorityCoefficients(a=7 + 186 % 5, b=13 + 120 % 7, c=3 + 22 % 3)
    assert coeffs == PriorityCoefficients(a=8, b=14, c=4)


def test_coefficients_stay_in_range() -> None:
    for material in ["x", "y", "dropspot", "another seed", "1234"]:
        c = coefficients_from_seed(derive_seed(material))
        assert 7 <= c.a <= 11
        assert 13 <= c.b <= 19
        assert 3 <= c.c <= 5


def test_coefficients_reject_short_seed() -> None:
    with pytest.raises(ValueError):
        _ = coefficients_from_seed("abc")


def test_score_formula() -> None:
    coeffs = PriorityCoefficients(a=7, b=13, c=3)
    assert score(0, 0, 0, coeffs) == BASE_SCORE
    assert score(10, 20, 4, coeffs) == 1000 + 3 + 7 - 1
    assert score(6, 12, 0, coeffs) == 1000 + 6 + 12


def test_score_is_deterministic() -> None:
    coeffs = PriorityCoefficients(a=9, b=17, c=5)
    assert score(523, 40, 7, coeffs) == score(523, 40, 7, coeffs)


def test_account_age_days_floors_and_clamps() -> None:
    now = datetime(2025, 3, 1, 12, 0, 0)
    assert account_age_days(now - timedelta(days=3, hours=23), now) == 3
    assert account_age_days(now, now) == 0
    assert account_age_days(now + timedelta(days=2), now) == 0
