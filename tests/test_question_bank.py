from __future__ import annotations

import json

import pytest

from quiz_core.faces import LINES
from quiz_core.question_bank import BankValidationError, load_bank, parse_bank, validate_bank
from tests.conftest import build_synthetic_bank


def test_bundled_bank_is_complete():
    bank = load_bank()
    assert len(bank) == 8 * len(LINES)
    assert len({q.id for q in bank}) == len(bank)
    assert {q.line for q in bank} == set(LINES)


def test_synthetic_bank_validates(synthetic_bank):
    assert validate_bank(synthetic_bank) is synthetic_bank


def test_missing_bucket_is_reported():
    bank = build_synthetic_bank(drop=[("Control", "B", "CO", 1), ("Pace", "C", "SEVERITY", 1)])
    with pytest.raises(BankValidationError) as exc:
        validate_bank(bank)
    assert "missing Control B:CO:1" in exc.value.problems
    assert "missing Pace C:SEVERITY:1" in exc.value.problems


def test_duplicate_ids_are_reported(synthetic_bank):
    with pytest.raises(BankValidationError, match="duplicate question id B-Control-CO1"):
        validate_bank(synthetic_bank + [synthetic_bank[0]])


def test_bad_picks_and_effect_keys():
    bank = build_synthetic_bank()
    q = next(q for q in bank if q.id == "C-Truth-CO2")
    q.options[1].pick = "F"
    q.options[0].effects["bogus"] = ["Truth"]
    with pytest.raises(BankValidationError) as exc:
        validate_bank(bank)
    joined = "\n".join(exc.value.problems)
    assert "C-Truth-CO2: CO picks must be" in joined
    assert "unknown effect keys ['bogus']" in joined


def test_archetype_options_must_match_family():
    bank = build_synthetic_bank()
    q = next(q for q in bank if q.id == "ARCH-Stress")
    q.options[0].archetype = "Sovereign"
    with pytest.raises(BankValidationError, match="unknown archetype 'Sovereign'"):
        validate_bank(bank)


def test_parse_bank_wraps_schema_errors():
    with pytest.raises(BankValidationError, match="record Q1"):
        parse_bank([{"id": "Q1", "phase": "B", "line": "Control", "type": "CO"}])


def test_load_bank_from_path(tmp_path):
    raw = json.loads(json.dumps([
        {
            "id": q.id, "phase": q.phase, "line": q.line, "type": q.type, "order": q.order, "prompt": q.prompt,
            "options": [vars(o) for o in q.options],
        }
        for q in build_synthetic_bank()
    ]))
    path = tmp_path / "bank.json"
    path.write_text(json.dumps(raw), encoding="utf-8")
    bank = load_bank(path)
    assert bank[0].id == "B-Control-CO1"
    assert bank[0].option("A").effects["famC"] == ["Control"]
