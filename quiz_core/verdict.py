"""Deterministic verdict table and purity arithmetic.

The table only covers the eight legal paths: the two CO decisions draw from
{C, O} and the CF decision from {C, F}.  Anything else is a caller bug.
"""
from __future__ import annotations

from typing import Dict, List

from .types import Decision
from .config import PICK_VALUE, FACE_PURITY_SEED, MODULE_CO_STEP, MODULE_CF_STEP

VERDICT_TABLE: Dict[str, str] = {
    "CCC": "C",
    "CCF": "O",
    "COC": "O",
    "COF": "F",
    "OCC": "O",
    "OCF": "F",
    "OOC": "O",
    "OOF": "F",
}


class InvalidDecisionCombination(ValueError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Invalid decision combination: {key}")


def compute_verdict(co1: str, co2: str, cf: str) -> str:
    key = f"{co1}{co2}{cf}"
    try:
        return VERDICT_TABLE[key]
    except KeyError:
        raise InvalidDecisionCombination(key) from None


def compute_face_purity(pick1: str, pick2: str) -> float:
    """A-line purity: 0.6 seed plus C=1.0, O=0.6, F=0.0 per pick."""
    return round(FACE_PURITY_SEED + PICK_VALUE[pick1] + PICK_VALUE[pick2], 6)


def face_purity_from_b(path: List[str]) -> float:
    """Purity over the C/O picks of a duel path (C=2, O=1); 0 when there are none."""
    c = path.count("C")
    o = path.count("O")
    if c + o == 0:
        return 0.0
    return (2.0 * c + 1.0 * o) / (c + o)


def compute_module_purity(decisions: List[Decision]) -> float:
    """Non-A purity: CO picks count +/-1.0, CF picks +/-1.6."""
    total = 0.0
    for d in decisions:
        step = MODULE_CF_STEP if d.type == "CF" else MODULE_CO_STEP
        total += step if d.pick == "C" else -step
    return round(total, 6)


def get_all_verdict_combinations() -> List[Dict[str, str]]:
    return [{"key": k, "verdict": v} for k, v in VERDICT_TABLE.items()]


def validate_verdict_table() -> bool:
    return len(VERDICT_TABLE) == 8 and all(
        k[0] in "CO" and k[1] in "CO" and k[2] in "CF" for k in VERDICT_TABLE
    )
