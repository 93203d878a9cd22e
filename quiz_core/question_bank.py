from __future__ import annotations
import json, logging, importlib.resources as ir
from pathlib import Path
from typing import Dict, List, Optional, Iterable

from pydantic import BaseModel, ValidationError

from .faces import LINES, FAMILY_TO_ARCHETYPES
from .types import Question, Option, EFFECT_KEYS

log = logging.getLogger(__name__)

# (phase, type, order) every line must cover
REQUIRED_KEYS: tuple[tuple[str, str, int], ...] = (
    ("B", "CO", 1),
    ("B", "CO", 2),
    ("B", "CF", 1),
    ("C", "CO", 1),
    ("C", "CO", 2),
    ("C", "CF", 3),
    ("C", "SEVERITY", 1),
)
_PICKS_BY_TYPE = {"CO": {"C", "O"}, "CF": {"C", "F"}}


class BankValidationError(ValueError):
    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


# ---- Raw record schemas ----
class OptionRecord(BaseModel):
    key: str
    label: str
    pick: Optional[str] = None
    level: Optional[str] = None
    archetype: Optional[str] = None
    effects: Dict[str, List[str]] = {}

class QuestionRecord(BaseModel):
    id: str
    phase: str
    line: str
    type: str
    order: int = 1
    prompt: str
    options: List[OptionRecord]


def _to_question(rec: QuestionRecord) -> Question:
    return Question(
        id=rec.id, phase=rec.phase, line=rec.line, type=rec.type, order=rec.order, prompt=rec.prompt,  # type: ignore[arg-type]
        options=[Option(**o.model_dump()) for o in rec.options],
    )


def parse_bank(raw: Iterable[dict]) -> List[Question]:
    questions: List[Question] = []
    for r in raw:
        try:
            rec = QuestionRecord.model_validate(r)
        except ValidationError as exc:
            rid = r.get("id", "?") if isinstance(r, dict) else "?"
            raise BankValidationError([f"record {rid}: {exc.errors()[0]['msg']}"]) from exc
        questions.append(_to_question(rec))
    return questions


def _option_problems(q: Question) -> List[str]:
    problems: List[str] = []
    keys = [o.key for o in q.options]
    if q.type in _PICKS_BY_TYPE:
        if sorted(keys) != ["A", "B"]:
            problems.append(f"{q.id}: {q.type} question needs options A/B, got {keys}")
        picks = {o.pick for o in q.options}
        if picks != _PICKS_BY_TYPE[q.type]:
            problems.append(f"{q.id}: {q.type} picks must be {sorted(_PICKS_BY_TYPE[q.type])}, got {sorted(str(p) for p in picks)}")
    elif q.type == "SEVERITY":
        if sorted(keys) != ["A", "B", "C"]:
            problems.append(f"{q.id}: severity probe needs options A/B/C, got {keys}")
        levels = {o.level for o in q.options}
        if levels != {"high", "mid", "low"}:
            problems.append(f"{q.id}: severity levels must be high/mid/low")
    elif q.type == "ARCHETYPE":
        allowed = set(FAMILY_TO_ARCHETYPES.get(q.line, ()))
        for o in q.options:
            if o.archetype not in allowed:
                problems.append(f"{q.id}: option {o.key} maps to unknown archetype {o.archetype!r}")
    else:
        problems.append(f"{q.id}: unknown type {q.type!r}")
    for o in q.options:
        bad = [k for k in o.effects if k not in EFFECT_KEYS]
        if bad:
            problems.append(f"{q.id}: option {o.key} has unknown effect keys {bad}")
    return problems


def validate_bank(questions: List[Question]) -> List[Question]:
    """Load-time contract: unique ids, full key coverage, well-formed options."""
    problems: List[str] = []
    seen: set = set()
    present: set = set()
    for q in questions:
        if q.id in seen:
            problems.append(f"duplicate question id {q.id}")
        seen.add(q.id)
        if q.line not in LINES:
            problems.append(f"{q.id}: unknown line {q.line!r}")
        problems.extend(_option_problems(q))
        present.add((q.line, q.phase, q.type, q.order))
    for line in LINES:
        for phase, qtype, order in REQUIRED_KEYS:
            if (line, phase, qtype, order) not in present:
                problems.append(f"missing {line} {phase}:{qtype}:{order}")
    if problems:
        raise BankValidationError(problems)
    log.debug("bank validated questions=%d", len(questions))
    return questions


def load_bank(path: Optional[Path] = None) -> List[Question]:
    if path is not None:
        data = Path(path).read_text(encoding="utf-8")
    else:
        data = ir.files(__package__).joinpath("data/bank.json").read_text(encoding="utf-8")
    raw = json.loads(data)
    return validate_bank(parse_bank(raw))
