from __future__ import annotations

import itertools

import pytest

from quiz_core.types import Decision
from quiz_core.verdict import (
    InvalidDecisionCombination,
    VERDICT_TABLE,
    compute_face_purity,
    compute_module_purity,
    compute_verdict,
    get_all_verdict_combinations,
    validate_verdict_table,
)


@pytest.mark.parametrize(
    "key,expected",
    [("CCC", "C"), ("CCF", "O"), ("COC", "O"), ("COF", "F"),
     ("OCC", "O"), ("OCF", "F"), ("OOC", "O"), ("OOF", "F")],
)
def test_verdict_table_entries(key, expected):
    assert compute_verdict(*key) == expected


ILLEGAL_KEYS = sorted(
    "".join(k) for k in itertools.product("COF", repeat=3) if "".join(k) not in VERDICT_TABLE
)


def test_every_key_outside_the_table_is_illegal():
    assert len(ILLEGAL_KEYS) == 27 - len(VERDICT_TABLE) == 19


@pytest.mark.parametrize("key", ILLEGAL_KEYS)
def test_illegal_combination_raises(key):
    with pytest.raises(InvalidDecisionCombination) as exc:
        compute_verdict(*key)
    assert exc.value.key == key
    assert str(exc.value) == f"Invalid decision combination: {key}"


def test_illegal_combination_is_a_value_error():
    with pytest.raises(ValueError):
        compute_verdict("", "", "")


@pytest.mark.parametrize(
    "p1,p2,expected",
    [("C", "C", 2.6), ("C", "O", 2.2), ("O", "C", 2.2), ("O", "O", 1.8), ("C", "F", 1.6), ("O", "F", 1.2)],
)
def test_face_purity(p1, p2, expected):
    assert compute_face_purity(p1, p2) == pytest.approx(expected)


def test_module_purity_weights_cf_heavier():
    ccc = [Decision("CO1", "C"), Decision("CO2", "C"), Decision("CF", "C")]
    oof = [Decision("CO1", "O"), Decision("CO2", "O"), Decision("CF", "F")]
    coc = [Decision("CO1", "C"), Decision("CO2", "O"), Decision("CF", "C")]
    assert compute_module_purity(ccc) == pytest.approx(3.6)
    assert compute_module_purity(oof) == pytest.approx(-3.6)
    assert compute_module_purity(coc) == pytest.approx(1.6)
    assert compute_module_purity([]) == 0.0


def test_table_self_check():
    assert validate_verdict_table()
    combos = get_all_verdict_combinations()
    assert len(combos) == 8
    assert {c["key"] for c in combos} == set(VERDICT_TABLE)
